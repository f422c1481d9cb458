"""Tests for CompareRunsUseCase.

Verifies:
- The two latest snapshots of each product are compared
- Products with fewer than two snapshots are skipped, not failed
- An unreadable snapshot fails only its own product
- Query validation and noteworthy threshold overrides
- End-to-end with the JSON store: score two runs, then diff them
"""

from __future__ import annotations

import pytest

from greenkpi.domain.common.errors import ValidationError
from greenkpi.infra.snapshot_store import JsonSnapshotStore
from greenkpi.use_cases.history.compare_runs import (
    CompareRunsQuery,
    CompareRunsUseCase,
    ComparisonStatus,
)
from greenkpi.use_cases.scoring.score_product import (
    PageMeasurement,
    ScoreProductCommand,
    ScoreProductUseCase,
)
from tests.unit.history_fakes import (
    BASE_TIME,
    InMemorySnapshotRepository,
    make_page,
    make_snapshot,
)


@pytest.fixture
def repo():
    return InMemorySnapshotRepository()


# ── Selection ────────────────────────────────────────────────────────


class TestExecute:
    def test_latest_two_are_compared(self, repo):
        repo.save(make_snapshot(90, "A", minutes=0))
        repo.save(make_snapshot(80, "B", minutes=10))
        repo.save(make_snapshot(65, "C", minutes=20))
        result = CompareRunsUseCase().execute(repo, CompareRunsQuery())
        (comparison,) = result.compared
        assert comparison.diff.score_delta == -15
        assert str(comparison.diff.grade_transition) == "B → C"
        assert comparison.base_ref.location == "Shop/1"
        assert comparison.head_ref.location == "Shop/2"

    def test_single_snapshot_skipped(self, repo, caplog):
        repo.save(make_snapshot(product="Blog"))
        with caplog.at_level("WARNING"):
            result = CompareRunsUseCase().execute(repo, CompareRunsQuery())
        (skipped,) = result.skipped
        assert skipped.product == "Blog"
        assert skipped.message == "1 snapshot(s) available, 2 required"
        assert "Not enough snapshots for Blog" in caplog.text

    def test_unknown_product_skipped(self, repo):
        result = CompareRunsUseCase().execute(repo, CompareRunsQuery(products=("Nope",)))
        assert result.skipped[0].message == "0 snapshot(s) available, 2 required"

    def test_corrupt_snapshot_fails_only_its_product(self, repo):
        repo.save(make_snapshot(80, product="Blog"))
        repo.save(make_snapshot(70, product="Blog", minutes=5))
        repo.save(make_snapshot(80, product="Shop"))
        repo.save(make_snapshot(85, product="Shop", minutes=5))
        repo.corrupt.add("Blog/1")
        result = CompareRunsUseCase().execute(repo, CompareRunsQuery())
        assert [c.product for c in result.failed] == ["Blog"]
        assert "invalid JSON" in result.failed[0].message
        assert [c.diff.score_delta for c in result.compared] == [5]

    def test_requested_products_only(self, repo):
        for product in ("Blog", "Shop"):
            repo.save(make_snapshot(product=product))
            repo.save(make_snapshot(product=product, minutes=5))
        result = CompareRunsUseCase().execute(repo, CompareRunsQuery(products=["Shop"]))
        assert [c.product for c in result.comparisons] == ["Shop"]

    def test_noteworthy_override_passed_through(self, repo):
        repo.save(make_snapshot(pages=[make_page(metrics={"cssFiles": 2})]))
        repo.save(make_snapshot(pages=[make_page(metrics={"cssFiles": 6})], minutes=5))
        plain = CompareRunsUseCase().execute(repo, CompareRunsQuery())
        tuned = CompareRunsUseCase().execute(
            repo, CompareRunsQuery(noteworthy_thresholds={"cssFiles": 3})
        )
        assert plain.compared[0].diff.noteworthy_changes == ()
        assert len(tuned.compared[0].diff.noteworthy_changes) == 1


class TestQuery:
    def test_string_rejected(self):
        with pytest.raises(ValidationError):
            CompareRunsQuery(products="Shop")  # type: ignore[arg-type]

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            CompareRunsQuery(products=("Shop", " "))

    def test_status_values(self):
        assert ComparisonStatus.SKIPPED.value == "skipped"


# ── End to end ───────────────────────────────────────────────────────


class TestWithJsonStore:
    def test_score_twice_then_compare(self, tmp_path, default_config, perfect_metrics):
        store = JsonSnapshotStore(tmp_path)
        scorer = ScoreProductUseCase(default_config)
        first = ScoreProductCommand(
            product="My Shop",
            pages=(PageMeasurement("Home", "https://shop.test/", perfect_metrics),),
            timestamp=BASE_TIME,
        )
        second = ScoreProductCommand(
            product="My Shop",
            pages=(
                PageMeasurement("Home", "https://shop.test/", {**perfect_metrics, "requests": 60}),
                PageMeasurement("Cart", "https://shop.test/cart", perfect_metrics),
            ),
            timestamp=BASE_TIME.replace(hour=10),
        )
        scorer.execute(first, store)
        scorer.execute(second, store)

        result = CompareRunsUseCase().execute(store, CompareRunsQuery())
        (comparison,) = result.compared
        diff = comparison.diff
        assert comparison.product == diff.product == "My Shop"
        assert comparison.base_ref.product == "My_Shop"
        assert (diff.base_score, diff.head_score) == (100, 92)
        assert [(p.name, p.delta) for p in diff.pages] == [("Home", -17), ("Cart", 100)]
        home = diff.pages[0]
        assert home.regressions[0].metric == "requests"
        assert home.noteworthy[0].metric == "requests"
