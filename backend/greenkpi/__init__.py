"""greenkpi: composite page-quality scoring and run-to-run comparison."""

__version__ = "0.1.0"
