"""Ports (abstract interfaces) for the run history domain.

These define WHAT the comparison workflow needs from storage without
specifying HOW it's provided.  Concrete implementations live in infra/.
"""

from __future__ import annotations

import abc

from .models import RunSnapshot, SnapshotRef


class SnapshotRepository(abc.ABC):
    """Persist and retrieve run snapshots, one ordered history per product."""

    @abc.abstractmethod
    def save(self, snapshot: RunSnapshot) -> SnapshotRef:
        ...

    @abc.abstractmethod
    def products(self) -> list[str]:
        """Keys of every stored product history.

        A key may be a storage-safe form of the name (``My_Shop``); it is
        accepted by ``list_refs``, and the snapshots hold the display name.
        """
        ...

    @abc.abstractmethod
    def list_refs(self, product: str) -> list[SnapshotRef]:
        """Refs for *product*, oldest first."""
        ...

    @abc.abstractmethod
    def load(self, ref: SnapshotRef) -> RunSnapshot:
        """Load one snapshot; raise SnapshotIntegrityError if unreadable."""
        ...


__all__ = ["SnapshotRepository"]
