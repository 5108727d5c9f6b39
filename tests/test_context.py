"""Tests for ClickContext."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from litestar_smartlinks.context import ClickContext, UTMParams


class TestUTMParams:
    """Tests for UTMParams."""

    def test_get_known_and_unknown_tags(self) -> None:
        """Test lookup by short tag name."""
        utm = UTMParams(source="tiktok", campaign="spring")

        assert utm.get("source") == "tiktok"
        assert utm.get("campaign") == "spring"
        assert utm.get("medium") is None
        assert utm.get("unknown") is None

    def test_merge_prefers_other(self) -> None:
        """Test that set values of the other side win."""
        merged = UTMParams(source="a", medium="m").merge(UTMParams(source="b"))

        assert merged == UTMParams(source="b", medium="m")

    def test_is_empty(self) -> None:
        """Test emptiness detection."""
        assert UTMParams().is_empty() is True
        assert UTMParams(source="").is_empty() is True
        assert UTMParams(term="x").is_empty() is False

    def test_to_dict_omits_absent(self) -> None:
        """Test that only present tags are serialized."""
        assert UTMParams(source="email", content=None).to_dict() == {"source": "email"}


class TestClickContext:
    """Tests for ClickContext."""

    def test_defaults(self) -> None:
        """Test that every attribute is optional."""
        context = ClickContext()

        assert context.country is None
        assert context.utm == UTMParams()
        assert context.query_params == {}

    def test_is_immutable(self) -> None:
        """Test that contexts cannot be modified in place."""
        context = ClickContext(country="DE")

        with pytest.raises(AttributeError):
            context.country = "FR"  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("attribute", "expected"),
        [
            ("country", "DE"),
            ("language", "de"),
            ("lang", "de"),
            ("utm.source", "tiktok"),
            ("utm_source", "tiktok"),
            ("utm.campaign", None),
            ("ref", "newsletter"),
            ("missing", None),
        ],
    )
    def test_get(self, attribute: str, expected: str | None) -> None:
        """Test attribute lookup including aliases and query parameters."""
        context = ClickContext(
            country="DE",
            language="de",
            utm=UTMParams(source="tiktok"),
            query_params={"ref": "newsletter"},
        )

        assert context.get(attribute) == expected

    def test_get_default(self) -> None:
        """Test that the default is returned for absent values."""
        assert ClickContext().get("country", "XX") == "XX"
        assert ClickContext().get("utm.medium", "none") == "none"

    def test_merge(self) -> None:
        """Test that set values from the other context take precedence."""
        base = ClickContext(country="US", device="desktop", utm=UTMParams(source="a"), query_params={"x": "1"})
        other = ClickContext(country="DE", utm=UTMParams(campaign="c"), query_params={"y": "2"})

        merged = base.merge(other)

        assert merged.country == "DE"
        assert merged.device == "desktop"
        assert merged.utm == UTMParams(source="a", campaign="c")
        assert merged.query_params == {"x": "1", "y": "2"}

    def test_with_helpers(self) -> None:
        """Test the copy-with helpers."""
        stamp = datetime(2026, 1, 1, tzinfo=UTC)
        context = ClickContext(country="DE")

        updated = context.with_link_id("promo").with_timestamp(stamp).with_utm(source="email")

        assert updated.link_id == "promo"
        assert updated.timestamp == stamp
        assert updated.utm.source == "email"
        assert context.link_id is None

    def test_to_dict(self) -> None:
        """Test serialization omits absent values and formats timestamps."""
        stamp = datetime(2026, 1, 1, 8, 30, tzinfo=UTC)
        context = ClickContext(link_id="promo", timestamp=stamp, country="DE", utm=UTMParams(source="email"))

        assert context.to_dict() == {
            "link_id": "promo",
            "timestamp": "2026-01-01T08:30:00+00:00",
            "country": "DE",
            "utm": {"source": "email"},
        }

    def test_to_dict_empty(self) -> None:
        """Test that an empty context serializes to an empty dict."""
        assert ClickContext().to_dict() == {}
