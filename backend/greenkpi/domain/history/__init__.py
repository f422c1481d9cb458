"""Run history domain: snapshots and run-to-run diffs."""

from .diff import diff_snapshots  # noqa: F401 – re-export for convenience
