"""Filesystem implementation of the SnapshotRepository port.

Snapshots are stored one JSON file per run::

    <root>/reports/<Product>/<Product>_RUN_2025-03-01T09-30-00-000Z.json

File names sort chronologically, so the newest run of a product is always
the last file.  Files are created exclusively and never rewritten.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from greenkpi.domain.common.errors import DomainError, SnapshotIntegrityError
from greenkpi.domain.history.models import RunSnapshot, SnapshotRef
from greenkpi.domain.history.ports import SnapshotRepository
from greenkpi.schemas.snapshot import RunSnapshotSchema

logger = logging.getLogger(__name__)

RUN_MARKER = "_RUN_"
_RUN_FILE_RE = re.compile(r"_RUN_(?P<label>.+)\.json$")


def safe_name(value: str) -> str:
    """File-system friendly form of a product name (``My Shop`` -> ``My_Shop``)."""
    cleaned = re.sub(r"\W+", "_", value or "", flags=re.ASCII)
    cleaned = re.sub(r"_+", "_", cleaned)
    return cleaned.strip("_")


def run_label(timestamp: datetime) -> str:
    """Millisecond UTC timestamp with ``:`` and ``.`` replaced by ``-``."""
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    millis = timestamp.microsecond // 1000
    return timestamp.strftime("%Y-%m-%dT%H-%M-%S") + f"-{millis:03d}Z"


class JsonSnapshotStore(SnapshotRepository):
    """Snapshot history kept as JSON files under ``<root>/reports``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.reports_dir = self.root / "reports"

    def _product_dir(self, product: str) -> Path:
        return self.reports_dir / safe_name(product)

    def save(self, snapshot: RunSnapshot) -> SnapshotRef:
        directory = self._product_dir(snapshot.product)
        directory.mkdir(parents=True, exist_ok=True)
        document = RunSnapshotSchema.from_domain(snapshot).to_json()

        attempt = 0
        while True:
            # same-millisecond runs get the next free millisecond so names stay ordered
            label = run_label(snapshot.timestamp + timedelta(milliseconds=attempt))
            path = directory / f"{safe_name(snapshot.product)}{RUN_MARKER}{label}.json"
            try:
                with path.open("x", encoding="utf-8") as handle:
                    handle.write(document)
                break
            except FileExistsError:
                attempt += 1

        logger.info("Snapshot for %s written to %s", snapshot.product, path)
        return SnapshotRef(product=snapshot.product, label=label, location=str(path))

    def products(self) -> list[str]:
        if not self.reports_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.reports_dir.iterdir()
            if entry.is_dir() and any(entry.glob(f"*{RUN_MARKER}*.json"))
        )

    def list_refs(self, product: str) -> list[SnapshotRef]:
        directory = self._product_dir(product)
        if not directory.is_dir():
            return []
        refs = []
        for path in sorted(directory.glob(f"*{RUN_MARKER}*.json")):
            match = _RUN_FILE_RE.search(path.name)
            if match is None:
                continue
            refs.append(SnapshotRef(product=product, label=match["label"], location=str(path)))
        return refs

    def load(self, ref: SnapshotRef) -> RunSnapshot:
        path = Path(ref.location)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise SnapshotIntegrityError(str(path), f"cannot read file: {exc}") from exc
        except ValueError as exc:
            raise SnapshotIntegrityError(str(path), f"invalid JSON: {exc}") from exc

        if not isinstance(raw, dict):
            raise SnapshotIntegrityError(str(path), "document is not a JSON object")
        try:
            return RunSnapshotSchema.model_validate(raw).to_domain()
        except PydanticValidationError as exc:
            missing = [
                ".".join(str(p) for p in err["loc"])
                for err in exc.errors()
            ]
            raise SnapshotIntegrityError(
                str(path), f"invalid or missing fields: {', '.join(missing)}"
            ) from exc
        except DomainError as exc:
            raise SnapshotIntegrityError(str(path), str(exc)) from exc


__all__ = ["JsonSnapshotStore", "run_label", "safe_name"]
