"""Dependency injection bootstrap — the single place that binds ports to adapters.

Callers (a measurement runner, a report generator, tests) obtain fully
wired use cases and the snapshot store from here and never import concrete
implementations directly.

Example::

    from greenkpi.wiring.bootstrap import get_score_product_use_case, get_snapshot_store

    use_case = get_score_product_use_case()
    result = use_case.execute(command, get_snapshot_store())
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from greenkpi.config.kpi_config import KpiConfig, load_kpi_config
from greenkpi.config.logging_config import configure_logging
from greenkpi.config.settings import Settings, get_settings
from greenkpi.domain.history.ports import SnapshotRepository
from greenkpi.infra.snapshot_store import JsonSnapshotStore
from greenkpi.use_cases.history.compare_runs import CompareRunsQuery, CompareRunsUseCase
from greenkpi.use_cases.scoring.score_product import (
    PageMeasurement,
    RecordedConfig,
    ScoreProductCommand,
    ScoreProductUseCase,
)

logger = logging.getLogger(__name__)


# ── Configuration ────────────────────────────────────────────────────────


def get_kpi_config(settings: Settings | None = None) -> KpiConfig:
    """Load the KPI configuration named by settings, or the built-in defaults.

    Raises ConfigurationError on an invalid file; callers should let it
    abort startup.
    """
    settings = settings or get_settings()
    if settings.kpi_config_path is None:
        logger.info("No KPI configuration file set; using built-in defaults")
        return KpiConfig()
    return load_kpi_config(settings.kpi_config_path)


# ── Storage ──────────────────────────────────────────────────────────────


def get_snapshot_store(root: str | Path | None = None) -> SnapshotRepository:
    """Return a JSON snapshot store rooted at *root* (default: settings.output_dir)."""
    return JsonSnapshotStore(root if root is not None else get_settings().output_dir)


# ── Use cases ────────────────────────────────────────────────────────────


def get_score_product_use_case(kpi_config: KpiConfig | None = None) -> ScoreProductUseCase:
    """Return a ScoreProductUseCase compiled from *kpi_config*."""
    kpi_config = kpi_config or get_kpi_config()
    recorded = RecordedConfig(
        weights=dict(kpi_config.weights) or None,
        thresholds=kpi_config.snapshot_thresholds() or None,
        score_ceilings=tuple(kpi_config.snapshot_ceilings()) or None,
        page_weights=dict(kpi_config.page_weights),
    )
    return ScoreProductUseCase(kpi_config.to_scoring_config(), recorded)


def get_compare_runs_use_case() -> CompareRunsUseCase:
    return CompareRunsUseCase()


# ── Runtime ──────────────────────────────────────────────────────────────


def init_logging(settings: Settings | None = None) -> None:
    """Configure root logging at the level named by settings."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)


def build_score_command(
    product: str,
    pages: Iterable[PageMeasurement],
    timestamp: datetime | None = None,
    settings: Settings | None = None,
) -> ScoreProductCommand:
    """ScoreProductCommand sized to the configured scoring worker pool."""
    settings = settings or get_settings()
    return ScoreProductCommand(
        product=product,
        pages=tuple(pages),
        timestamp=timestamp,
        max_workers=settings.scoring_workers,
    )


def build_compare_query(
    products: Iterable[str] | None = None,
    kpi_config: KpiConfig | None = None,
) -> CompareRunsQuery:
    """CompareRunsQuery carrying the configured noteworthy thresholds."""
    kpi_config = kpi_config or get_kpi_config()
    return CompareRunsQuery(
        products=tuple(products) if products is not None else None,
        noteworthy_thresholds=dict(kpi_config.noteworthy_thresholds) or None,
    )
