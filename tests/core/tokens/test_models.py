"""Tests for token cache records."""

from datetime import UTC, datetime, timedelta

import pytest

from core.tokens.models import (
    DEFAULT_TOKEN_LIFETIME_SECONDS,
    CachedToken,
    IssuedToken,
)

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class TestIssuedToken:
    def test_default_lifetime(self):
        issued = IssuedToken("tok")
        assert issued.lifetime_seconds == DEFAULT_TOKEN_LIFETIME_SECONDS == 3600

    def test_is_immutable(self):
        issued = IssuedToken("tok", 60)
        with pytest.raises(AttributeError):
            issued.value = "other"


class TestCachedTokenFromIssued:
    def test_expiry_uses_upstream_lifetime(self):
        record = CachedToken.from_issued(IssuedToken("tok", 120), now=NOW)

        assert record.value == "tok"
        assert record.expires_at == NOW + timedelta(seconds=120)
        assert record.short_expiration is None

    def test_short_expiration_replaces_lifetime(self):
        record = CachedToken.from_issued(
            IssuedToken("tok", 3600), short_expiration_seconds=30, now=NOW
        )

        assert record.expires_at == NOW + timedelta(seconds=30)
        assert record.short_expiration == timedelta(seconds=30)

    def test_short_expiration_longer_than_lifetime_still_replaces(self):
        record = CachedToken.from_issued(
            IssuedToken("tok", 60), short_expiration_seconds=600, now=NOW
        )
        assert record.expires_at == NOW + timedelta(seconds=600)

    def test_zero_short_expiration_means_no_override(self):
        record = CachedToken.from_issued(
            IssuedToken("tok", 60), short_expiration_seconds=0, now=NOW
        )
        assert record.expires_at == NOW + timedelta(seconds=60)
        assert record.short_expiration is None

    def test_negative_lifetime_expires_immediately(self):
        record = CachedToken.from_issued(IssuedToken("tok", -5), now=NOW)
        assert record.expires_at == NOW

    def test_huge_override_saturates(self):
        record = CachedToken.from_issued(
            IssuedToken("tok"), short_expiration_seconds=10**12, now=NOW
        )
        assert record.expires_at == datetime.max.replace(tzinfo=UTC)
        assert record.is_fresh(NOW)


class TestCachedTokenFreshness:
    def test_fresh_before_expiry(self):
        record = CachedToken("tok", NOW + timedelta(seconds=1))
        assert record.is_fresh(NOW)

    def test_stale_exactly_at_expiry(self):
        record = CachedToken("tok", NOW)
        assert not record.is_fresh(NOW)

    def test_stale_after_expiry(self):
        record = CachedToken("tok", NOW - timedelta(seconds=1))
        assert not record.is_fresh(NOW)

    def test_zero_lifetime_is_never_fresh(self):
        record = CachedToken.from_issued(IssuedToken("tok", 0))
        assert not record.is_fresh()

    def test_remaining_lifetime(self):
        record = CachedToken("tok", datetime.now(UTC) + timedelta(minutes=10))
        remaining = record.remaining_lifetime.total_seconds()
        assert 590 < remaining <= 600
