"""Boundary test: scoring and history domain modules must stay pure.

Regex-scans every domain module to ensure no pydantic, PyYAML or
filesystem access leaks in, and checks the public scoring and history
modules declare an __all__ export list.
"""

from __future__ import annotations

import re
from pathlib import Path

import pytest

_DOMAIN_DIR = Path(__file__).resolve().parents[3] / "greenkpi" / "domain"

_ALL_MODULES = sorted(
    str(p.relative_to(_DOMAIN_DIR)) for p in _DOMAIN_DIR.rglob("*.py")
)

_EXPORTING_MODULES = [
    "scoring/models.py",
    "scoring/catalog.py",
    "scoring/normalization.py",
    "scoring/weights.py",
    "scoring/rules.py",
    "scoring/grading.py",
    "scoring/composite.py",
    "scoring/aggregate.py",
    "history/models.py",
    "history/diff.py",
    "history/ports.py",
]

FORBIDDEN_IMPORTS = re.compile(
    r"^\s*(from|import)\s+(pydantic|pydantic_settings|yaml|json|os|shutil|pathlib)\b",
    re.MULTILINE,
)

FILE_ACCESS = re.compile(r"\bopen\(|\.read_text\(|\.write_text\(")


class TestNoIOLeakage:
    """Domain modules must be free of infrastructure imports."""

    def test_modules_found(self):
        assert "scoring/composite.py" in _ALL_MODULES

    @pytest.mark.parametrize("filename", _ALL_MODULES)
    def test_no_forbidden_imports(self, filename: str):
        source = (_DOMAIN_DIR / filename).read_text()
        matches = FORBIDDEN_IMPORTS.findall(source)
        assert not matches, (
            f"{filename} contains forbidden imports: {matches}"
        )

    @pytest.mark.parametrize("filename", _ALL_MODULES)
    def test_no_file_access(self, filename: str):
        source = (_DOMAIN_DIR / filename).read_text()
        assert not FILE_ACCESS.search(source), f"{filename} touches the filesystem"

    @pytest.mark.parametrize("filename", _EXPORTING_MODULES)
    def test_has_all_export(self, filename: str):
        source = (_DOMAIN_DIR / filename).read_text()
        assert "__all__" in source, f"{filename} is missing __all__"
