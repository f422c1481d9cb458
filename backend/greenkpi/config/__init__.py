"""Configuration module"""
from .settings import Settings, settings, get_settings
from .kpi_config import (
    CeilingRuleSpec,
    KpiConfig,
    ThresholdSpec,
    load_kpi_config,
)
from .logging_config import configure_logging

__all__ = [
    # Settings
    "Settings",
    "settings",
    "get_settings",
    # KPI config
    "CeilingRuleSpec",
    "KpiConfig",
    "ThresholdSpec",
    "load_kpi_config",
    # Logging
    "configure_logging",
]
