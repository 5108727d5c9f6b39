"""Tests for candidate filtering."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from litestar_smartlinks.eligibility import eligible_targets, is_within_window
from litestar_smartlinks.models.target import Target


def _target(target_id: str, **kwargs) -> Target:
    return Target(target_id=target_id, url=f"https://example.com/{target_id}", **kwargs)


class TestIsWithinWindow:
    """Tests for inclusive time windows."""

    def test_unbounded_window(self, now: datetime) -> None:
        """Test that a window without bounds contains any time."""
        assert is_within_window(now, None, None) is True

    def test_bounds_are_inclusive(self, now: datetime) -> None:
        """Test that both bounds contain the exact instant."""
        assert is_within_window(now, now, None) is True
        assert is_within_window(now, None, now) is True
        assert is_within_window(now, now, now) is True

    def test_outside_window(self, now: datetime) -> None:
        """Test times before and after the window."""
        second = timedelta(seconds=1)
        assert is_within_window(now, now + second, None) is False
        assert is_within_window(now, None, now - second) is False

    def test_naive_bounds_are_utc(self, now: datetime) -> None:
        """Test that naive datetimes compare as UTC."""
        naive = now.replace(tzinfo=None)
        assert is_within_window(now, naive, naive) is True
        assert is_within_window(naive, now, now) is True


class TestEligibleTargets:
    """Tests for eligible_targets."""

    def test_disabled_targets_are_removed(self, now: datetime) -> None:
        """Test that enabled=False removes a target entirely."""
        targets = [_target("a", enabled=False), _target("b")]

        result = eligible_targets(targets, now)

        assert [c.target.target_id for c in result] == ["b"]
        assert result[0].index == 1

    def test_time_windows_are_applied(self, now: datetime) -> None:
        """Test that targets outside their window are removed."""
        hour = timedelta(hours=1)
        targets = [
            _target("future", valid_from=now + hour),
            _target("past", valid_until=now - hour),
            _target("current", valid_from=now - hour, valid_until=now + hour),
        ]

        result = eligible_targets(targets, now)

        assert [c.target.target_id for c in result] == ["current"]

    def test_sorted_by_priority_with_default(self, now: datetime) -> None:
        """Test ordering by priority where an absent priority counts as 1000."""
        targets = [
            _target("none"),
            _target("p100", priority=100),
            _target("p10", priority=10),
            _target("p1000", priority=1000),
        ]

        result = eligible_targets(targets, now)

        assert [c.target.target_id for c in result] == ["p10", "p100", "none", "p1000"]

    def test_ties_keep_declaration_order(self, now: datetime) -> None:
        """Test that the sort is stable for equal priorities."""
        targets = [_target("x", priority=5), _target("y", priority=5), _target("z", priority=5)]

        result = eligible_targets(targets, now)

        assert [c.index for c in result] == [0, 1, 2]

    def test_empty_input(self) -> None:
        """Test that no targets yields no candidates."""
        assert eligible_targets([], datetime.now(UTC)) == []
