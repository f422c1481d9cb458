"""Domain-level error hierarchy.

All domain exceptions inherit from DomainError so that outer layers
(config loading, snapshot storage, use cases) can catch a single base
class without leaking domain internals.
"""


class DomainError(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainError):
    """A domain invariant or input constraint was violated."""


class ConfigurationError(DomainError):
    """KPI configuration is malformed and scoring must not start.

    Raised for threshold bands of the wrong length or with decreasing
    cut-points, negative weights, out-of-range ceiling scores and ceiling
    conditions that do not parse.
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        self.key = key
        prefix = f"{key}: " if key else ""
        super().__init__(f"{prefix}{message}")


class SnapshotIntegrityError(DomainError):
    """A persisted run snapshot could not be read or is missing fields."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid snapshot {source}: {reason}")
