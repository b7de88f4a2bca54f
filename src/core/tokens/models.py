"""Token data models."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

# Lifetime assumed when an upstream does not report one
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


@dataclass(frozen=True)
class IssuedToken:
    """
    Token as returned by one upstream call.

    Attributes:
        value: The access token string
        lifetime_seconds: Lifetime reported by the upstream, from the moment of the call
    """

    value: str
    lifetime_seconds: float = DEFAULT_TOKEN_LIFETIME_SECONDS


@dataclass(frozen=True)
class CachedToken:
    """
    Cached token record with expiration tracking.

    Records are immutable: a refresh replaces the whole record.

    Attributes:
        value: The access token string
        expires_at: UTC timestamp after which the token is refreshed
        short_expiration: Configured override that replaced the upstream lifetime
    """

    value: str
    expires_at: datetime
    short_expiration: timedelta | None = None

    @classmethod
    def from_issued(
        cls,
        issued: IssuedToken,
        short_expiration_seconds: float | None = None,
        now: datetime | None = None,
    ) -> "CachedToken":
        """
        Create a cache record from an upstream response.

        Args:
            issued: Token and upstream-declared lifetime
            short_expiration_seconds: When set, replaces the upstream lifetime
            now: Reference time (default: current UTC time)

        Returns:
            CachedToken instance
        """
        now = now or datetime.now(UTC)
        short_expiration = None
        try:
            if short_expiration_seconds:
                short_expiration = timedelta(seconds=short_expiration_seconds)
                lifetime = short_expiration
            else:
                lifetime = timedelta(seconds=max(issued.lifetime_seconds, 0))
            expires_at = now + lifetime
        except OverflowError:
            expires_at = datetime.max.replace(tzinfo=UTC)

        return cls(
            value=issued.value,
            expires_at=expires_at,
            short_expiration=short_expiration,
        )

    def is_fresh(self, now: datetime | None = None) -> bool:
        """True while the expiry is strictly in the future."""
        return self.expires_at > (now or datetime.now(UTC))

    @property
    def remaining_lifetime(self) -> timedelta:
        """Get remaining time before token expires."""
        return self.expires_at - datetime.now(UTC)


__all__ = ["IssuedToken", "CachedToken", "DEFAULT_TOKEN_LIFETIME_SECONDS"]
