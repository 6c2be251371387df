"""Tests for timezone handling utilities."""

from datetime import datetime, timedelta, timezone

import pytest

from schedule_bot.utils.time import (
    ensure_timezone_aware,
    format_for_discord,
    parse_stored_datetime,
    utc_now,
)


class TestEnsureTimezoneAware:
    """Test conversion of datetimes to aware UTC."""

    def test_naive_is_assumed_utc(self) -> None:
        result = ensure_timezone_aware(datetime(2026, 3, 2, 18, 0))

        assert result == datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)

    def test_other_offsets_are_converted(self) -> None:
        cet = timezone(timedelta(hours=1))

        result = ensure_timezone_aware(datetime(2026, 3, 2, 19, 0, tzinfo=cet))

        assert result.tzinfo is timezone.utc
        assert result.hour == 18

    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo is timezone.utc


class TestParseStoredDatetime:
    """Test reading timestamps back from the entry store."""

    def test_iso_string(self) -> None:
        result = parse_stored_datetime("2026-03-02T18:00:00+00:00")

        assert result == datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)

    def test_naive_iso_string(self) -> None:
        result = parse_stored_datetime("2026-03-02T18:00:00")

        assert result is not None and result.tzinfo is timezone.utc

    def test_datetime_and_none(self) -> None:
        dt = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)

        assert parse_stored_datetime(dt) == dt
        assert parse_stored_datetime(None) is None

    def test_unsupported_value(self) -> None:
        with pytest.raises(TypeError):
            _ = parse_stored_datetime(1_772_474_400)


class TestFormatForDiscord:
    """Test Discord timestamp markup."""

    def test_default_style(self) -> None:
        dt = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)

        assert format_for_discord(dt) == f"<t:{int(dt.timestamp())}:F>"

    def test_relative_style_from_naive(self) -> None:
        naive = datetime(2026, 3, 2, 18, 0)
        aware = naive.replace(tzinfo=timezone.utc)

        assert format_for_discord(naive, "R") == f"<t:{int(aware.timestamp())}:R>"
