"""Tests for target selection."""

from __future__ import annotations

import random
from collections import Counter
from datetime import datetime

import pytest

from litestar_smartlinks.context import ClickContext
from litestar_smartlinks.eligibility import eligible_targets
from litestar_smartlinks.models.target import Target, TargetConditions
from litestar_smartlinks.selection import RandomSource, TargetSelector


def _target(target_id: str, **kwargs) -> Target:
    return Target(target_id=target_id, url=f"https://example.com/{target_id}", **kwargs)


def _select(selector: TargetSelector, targets: list[Target], now: datetime, context: ClickContext | None = None):
    selection = selector.select(eligible_targets(targets, now), context or ClickContext())
    return None if selection is None else selection.candidate.target.target_id


class TestRandomSource:
    """Tests for the random source protocol."""

    def test_stdlib_random_satisfies_protocol(self) -> None:
        """Test that random.Random is a valid random source."""
        assert isinstance(random.Random(1), RandomSource)

    def test_scripted_random_satisfies_protocol(self, scripted_random) -> None:
        """Test that the scripted test double is a valid random source."""
        assert isinstance(scripted_random(0.5), RandomSource)


class TestPoolSelection:
    """Tests for building the selection pool."""

    def test_no_match_returns_none(self, now: datetime) -> None:
        """Test that no matching candidate yields no selection."""
        targets = [_target("de", conditions=TargetConditions(country="DE"))]

        assert _select(TargetSelector(), targets, now, ClickContext(country="FR")) is None

    def test_lowest_priority_match_wins(self, now: datetime) -> None:
        """Test that a more specific lower-priority target beats a catch-all."""
        targets = [
            _target("catch-all", priority=100),
            _target("de", priority=10, conditions=TargetConditions(country="DE")),
        ]

        assert _select(TargetSelector(), targets, now, ClickContext(country="DE")) == "de"
        assert _select(TargetSelector(), targets, now, ClickContext(country="FR")) == "catch-all"

    def test_unprioritized_target_loses_to_explicit_priority(self, now: datetime) -> None:
        """Test that an absent priority sorts after priority 100 and 10."""
        targets = [_target("none"), _target("p100", priority=100), _target("p10", priority=10)]

        assert _select(TargetSelector(), targets, now) == "p10"

    def test_single_match_skips_randomness(self, now: datetime, scripted_random) -> None:
        """Test that a lone match is returned without drawing."""
        source = scripted_random(0.99)
        targets = [_target("only", weight=5)]

        assert _select(TargetSelector(random_source=source), targets, now) == "only"
        assert source.calls == 0

    def test_no_weights_picks_first_declared(self, now: datetime, scripted_random) -> None:
        """Test that ties without weights resolve in declaration order."""
        source = scripted_random(0.99)
        targets = [_target("first", priority=5), _target("second", priority=5), _target("third", priority=5)]

        assert _select(TargetSelector(random_source=source), targets, now) == "first"
        assert source.calls == 0

    def test_pool_excludes_higher_priority_values(self, now: datetime, scripted_random) -> None:
        """Test that only matches at the winning priority enter the draw."""
        targets = [
            _target("a", priority=10, weight=1),
            _target("b", priority=20, weight=1000),
        ]

        assert _select(TargetSelector(random_source=scripted_random(0.99)), targets, now) == "a"

    def test_non_matching_ties_are_skipped(self, now: datetime) -> None:
        """Test that a non-matching candidate at the same priority is not in the pool."""
        targets = [
            _target("de", priority=10, weight=1, conditions=TargetConditions(country="DE")),
            _target("fr", priority=10, weight=1, conditions=TargetConditions(country="FR")),
        ]

        for seed in range(20):
            selector = TargetSelector(random_source=random.Random(seed))
            assert _select(selector, targets, now, ClickContext(country="FR")) == "fr"


class TestWeightedSelection:
    """Tests for weighted A/B selection."""

    def test_scripted_draws_are_deterministic(self, now: datetime, scripted_random) -> None:
        """Test that the draw walks cumulative weights in declaration order."""
        targets = [_target("a", weight=1), _target("b", weight=3), _target("c", weight=6)]

        # total 10: a covers [0, 1), b [1, 4), c [4, 10)
        selector = TargetSelector(random_source=scripted_random(0.05, 0.2, 0.5, 0.39, 0.4))

        assert [_select(selector, targets, now) for _ in range(5)] == ["a", "b", "c", "b", "c"]

    def test_distribution_follows_weights(self, now: datetime) -> None:
        """Test that a 1:3:6 split is honored approximately."""
        targets = [_target("a", weight=1), _target("b", weight=3), _target("c", weight=6)]
        selector = TargetSelector(random_source=random.Random(20260315))

        counts = Counter(_select(selector, targets, now) for _ in range(1000))

        assert set(counts) == {"a", "b", "c"}
        assert 0.5 <= counts["c"] / 1000 <= 0.7
        assert counts["a"] < counts["b"] < counts["c"]

    def test_zero_weight_is_never_drawn(self, now: datetime) -> None:
        """Test that a zero-weight target is excluded while others are positive."""
        targets = [_target("zero", weight=0), _target("one", weight=1)]
        selector = TargetSelector(random_source=random.Random(7))

        results = {_select(selector, targets, now) for _ in range(100)}

        assert results == {"one"}

    def test_absent_weight_counts_as_one(self, now: datetime, scripted_random) -> None:
        """Test that a missing weight counts as 1 when another target declares one."""
        targets = [_target("implicit"), _target("explicit", weight=1)]

        assert _select(TargetSelector(random_source=scripted_random(0.49)), targets, now) == "implicit"
        assert _select(TargetSelector(random_source=scripted_random(0.51)), targets, now) == "explicit"

    def test_lone_zero_weight_match_is_selected(self, now: datetime) -> None:
        """Test that a single matching target is chosen even with weight 0."""
        targets = [_target("zero", weight=0)]

        assert _select(TargetSelector(), targets, now) == "zero"

    def test_all_zero_weights_fall_back_to_first(self, now: datetime, scripted_random) -> None:
        """Test that a pool with no positive weight picks the first declared member."""
        targets = [_target("x", weight=0), _target("y", weight=0)]

        assert _select(TargetSelector(random_source=scripted_random(0.9)), targets, now) == "x"

    @pytest.mark.parametrize("variate", [0.0, 0.999999])
    def test_boundary_variates(self, now: datetime, scripted_random, variate: float) -> None:
        """Test that extreme variates still land on a pool member."""
        targets = [_target("a", weight=2), _target("b", weight=2)]

        assert _select(TargetSelector(random_source=scripted_random(variate)), targets, now) in {"a", "b"}
