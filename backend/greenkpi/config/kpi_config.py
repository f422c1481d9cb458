"""
KPI configuration loading.

Reads the ``kpi`` section of a YAML or JSON configuration file::

    kpi:
      scale: standard
      weights:
        requests: 0.4
        transferKB: 0.25
      thresholds:
        requests: [27, 50, 80, 120]
        compressedPct: {bands: [50, 70, 85, 95], direction: higherBetter}
      score_ceilings:
        - if: "errors > 5"
          max_score: 50
      page_weights:
        Home: 2
        "My Shop": {Checkout: 3}
      noteworthy_thresholds:
        requests: 10

Everything is validated here, before any scoring starts: a malformed band,
a negative weight or an unparseable ceiling condition raises
ConfigurationError and the run must not begin.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from greenkpi.domain.common.errors import ConfigurationError
from greenkpi.domain.scoring.catalog import METRICS_BY_NAME, direction_for
from greenkpi.domain.scoring.composite import ScoringConfig
from greenkpi.domain.scoring.models import Direction, ThresholdBand, get_scale
from greenkpi.domain.scoring.rules import CeilingRule

logger = logging.getLogger(__name__)


class ThresholdSpec(BaseModel):
    """Band with an explicit direction, overriding the catalog's."""
    bands: List[float]
    direction: Optional[str] = None


class CeilingRuleSpec(BaseModel):
    """One ``{if: <condition>, max_score: <int>}`` entry."""
    model_config = ConfigDict(populate_by_name=True)

    condition: str = Field(alias="if")
    max_score: float


class KpiConfig(BaseModel):
    """The ``kpi`` section of the configuration file."""
    model_config = ConfigDict(extra="ignore")

    scale: str = "standard"
    weights: Dict[str, float] = Field(default_factory=dict)
    thresholds: Dict[str, Union[List[float], ThresholdSpec]] = Field(default_factory=dict)
    score_ceilings: List[CeilingRuleSpec] = Field(default_factory=list)
    page_weights: Dict[str, Union[float, Dict[str, float]]] = Field(default_factory=dict)
    noteworthy_thresholds: Dict[str, float] = Field(default_factory=dict)

    @field_validator(
        "weights", "thresholds", "page_weights", "noteworthy_thresholds",
        mode="before",
    )
    @classmethod
    def empty_when_null(cls, v):
        """``weights:`` with no value in YAML parses as None."""
        if v is None:
            return {}
        return v

    @field_validator("score_ceilings", mode="before")
    @classmethod
    def ceilings_as_list(cls, v):
        return [] if v is None else v

    @field_validator("weights")
    @classmethod
    def weights_non_negative(cls, v: Dict[str, float]) -> Dict[str, float]:
        for name, weight in v.items():
            if weight < 0:
                raise ValueError(f"weight for {name!r} must be >= 0, got {weight}")
            if name not in METRICS_BY_NAME:
                logger.warning("Ignoring weight for unknown metric %r", name)
        return {k: w for k, w in v.items() if k in METRICS_BY_NAME}

    @field_validator("thresholds")
    @classmethod
    def thresholds_for_known_metrics(cls, v):
        for name in v:
            if name not in METRICS_BY_NAME:
                logger.warning("Ignoring thresholds for unknown metric %r", name)
        return {k: spec for k, spec in v.items() if k in METRICS_BY_NAME}

    @model_validator(mode="after")
    def compiles(self):
        """Reject configurations the scoring engine cannot use."""
        try:
            self.to_scoring_config()
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc
        return self

    def threshold_bands(self) -> Dict[str, ThresholdBand]:
        bands: Dict[str, ThresholdBand] = {}
        for name, spec in self.thresholds.items():
            try:
                if isinstance(spec, ThresholdSpec):
                    direction = (
                        Direction.parse(spec.direction) if spec.direction
                        else direction_for(name)
                    )
                    bands[name] = ThresholdBand.of(spec.bands, direction)
                else:
                    bands[name] = ThresholdBand.of(spec, direction_for(name))
            except ConfigurationError as exc:
                raise ConfigurationError(str(exc), key=f"thresholds.{name}") from exc
        return bands

    def ceiling_rules(self) -> tuple[CeilingRule, ...]:
        rules = []
        for index, spec in enumerate(self.score_ceilings):
            try:
                rules.append(CeilingRule.parse(spec.condition, spec.max_score))
            except ConfigurationError as exc:
                raise ConfigurationError(str(exc), key=f"score_ceilings[{index}]") from exc
        return tuple(rules)

    def to_scoring_config(self) -> ScoringConfig:
        """Compile into the immutable config the scorer consumes."""
        return ScoringConfig(
            raw_weights=dict(self.weights),
            thresholds=self.threshold_bands(),
            ceiling_rules=self.ceiling_rules(),
            scale=get_scale(self.scale),
        )

    def snapshot_thresholds(self) -> Dict[str, Any]:
        """Thresholds as written in the file, for recording in snapshots."""
        return {
            name: spec.model_dump() if isinstance(spec, ThresholdSpec) else list(spec)
            for name, spec in self.thresholds.items()
        }

    def snapshot_ceilings(self) -> List[Dict[str, Any]]:
        return [
            {"if": spec.condition, "max_score": spec.max_score}
            for spec in self.score_ceilings
        ]

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "KpiConfig":
        """Validate a parsed document; accepts either the whole file or its ``kpi`` section."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"KPI configuration must be a mapping, got {type(data).__name__}")
        section = data["kpi"] if "kpi" in data else data
        try:
            return cls.model_validate(section or {})
        except ValidationError as exc:
            raise ConfigurationError(_summarize(exc)) from exc


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return "invalid KPI configuration: " + "; ".join(parts)


def load_kpi_config(path: Union[str, Path]) -> KpiConfig:
    """Read and validate a KPI configuration file (YAML or JSON)."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"cannot read KPI configuration {path}: {exc}") from exc

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"cannot parse KPI configuration {path}: {exc}") from exc

    config = KpiConfig.from_mapping(data)
    logger.info(
        "Loaded KPI configuration from %s (%d weights, %d thresholds, %d ceiling rules)",
        path, len(config.weights), len(config.thresholds), len(config.score_ceilings),
    )
    return config


__all__ = [
    "CeilingRuleSpec",
    "KpiConfig",
    "ThresholdSpec",
    "load_kpi_config",
]
