"""
Shared pytest fixtures for backend tests.

Provides scoring configurations and metric records used across the unit
suites.
"""
import sys
from pathlib import Path

import pytest

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from greenkpi.domain.scoring.composite import ScoringConfig


@pytest.fixture
def default_config():
    """Scoring config with built-in weights, thresholds and no ceilings."""
    return ScoringConfig()


@pytest.fixture
def perfect_metrics():
    """A page that lands in the best band for every scorable metric."""
    return {
        "requests": 10,
        "transferKB": 120,
        "domSize": 400,
        "uniqueDomains": 2,
        "compressedPct": 100,
        "minifiedPct": 100,
        "inlineStyles": 0,
        "inlineScripts": 0,
        "cssFiles": 1,
        "jsFiles": 2,
        "resizedImages": 0,
        "hiddenDownloadedImages": 0,
        "staticWithCookies": 0,
        "redirects": 0,
        "errors": 0,
        "fontsExternal": False,
        "belowFoldNoLazy": 0,
        "staticNoCache": 0,
        "imageLegacyPct": 0,
        "wastedImagePct": 0,
        "hstsMissing": False,
        "cookieHeaderAvg": 300,
    }
