"""Single-use check-in tokens for QR visit confirmation.

A token is 32 random bytes encoded as base64url without padding. Only its
SHA-256 hex digest and the expiry are stored by the caller; the plaintext is
embedded once in the redemption URL (and its QR code) and never persisted.

The service is stateless. Enforcing single use is the caller's contract: the
redeeming code must clear the stored hash in the same atomic update that
confirms the match (see ``VisitService.redeem_check_in``).
"""

import hashlib
import hmac
import logging
import math
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from urllib.parse import urlencode

from src.config import get_settings

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
CHECK_IN_PATH = "/check-in"

ExpiryValue = datetime | date | int | float | str


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def to_utc_datetime(value: ExpiryValue) -> datetime:
    """Normalize an expiry value to an aware UTC datetime.

    Naive datetimes are assumed to be UTC (SQLite drops the offset). Numbers
    are epoch seconds. Strings must be ISO-8601.

    Raises:
        ValueError: If the value cannot be interpreted as a point in time.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        try:
            return value.astimezone(UTC)
        except OverflowError as e:
            raise ValueError(f"Expiry out of range: {value.isoformat()}") from e
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if isinstance(value, bool):
        raise ValueError("Boolean is not a valid expiry")
    if isinstance(value, int | float):
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value}") from e
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_utc_datetime(datetime.fromisoformat(text))
    raise ValueError(f"Unsupported expiry type: {type(value).__name__}")


@dataclass(frozen=True)
class IssuedToken:
    """A freshly minted token. Persist ``token_hash`` and ``expires_at`` only."""

    plaintext: str
    token_hash: str
    expires_at: datetime


class TokenService:
    """Mint, hash, encode and check expiry of check-in tokens."""

    def __init__(
        self,
        base_url: str,
        ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.ttl = ttl
        self.clock = clock

    def now(self) -> datetime:
        """Current time according to the injected clock."""
        return to_utc_datetime(self.clock())

    def generate_token(self) -> str:
        """Generate a 256-bit URL-safe token with no padding."""
        return secrets.token_urlsafe(TOKEN_BYTES)

    def hash_token(self, plaintext: str) -> str:
        """SHA-256 hex digest of a token.

        Unsalted on purpose: the plaintext already carries 256 bits of
        entropy, so the digest is a stable lookup value.
        """
        return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()

    def build_redemption_url(self, entity_id: int | str, plaintext: str) -> str:
        """URL a QR code points at: ``<base>/check-in?v=<id>&t=<token>``."""
        query = urlencode({"v": str(entity_id), "t": plaintext})
        return f"{self.base_url}{CHECK_IN_PATH}?{query}"

    def is_expired(self, expires_at: ExpiryValue | None, now: datetime | None = None) -> bool:
        """Whether ``now`` is strictly after ``expires_at``.

        A token is still valid at its exact expiry instant. Missing or
        unreadable expiries count as expired.
        """
        if expires_at is None:
            return True
        try:
            expiry = to_utc_datetime(expires_at)
        except ValueError as e:
            logger.warning(f"Unreadable token expiry {expires_at!r}, treating as expired: {e}")
            return True
        current = to_utc_datetime(now) if now is not None else self.now()
        return current > expiry

    def days_remaining(self, expires_at: ExpiryValue, now: datetime | None = None) -> int:
        """Whole days until expiry, rounded up. Negative once expired.

        For display only; use ``is_expired`` for the validity decision.
        """
        expiry = to_utc_datetime(expires_at)
        current = to_utc_datetime(now) if now is not None else self.now()
        return math.ceil((expiry - current) / timedelta(days=1))

    def issue(self, now: datetime | None = None) -> IssuedToken:
        """Generate a token together with its hash and expiry."""
        plaintext = self.generate_token()
        issued_at = to_utc_datetime(now) if now is not None else self.now()
        return IssuedToken(
            plaintext=plaintext,
            token_hash=self.hash_token(plaintext),
            expires_at=issued_at + self.ttl,
        )

    def verify(
        self,
        presented: str,
        stored_hash: str | None,
        expires_at: ExpiryValue | None,
        now: datetime | None = None,
    ) -> bool:
        """Check a presented token against stored state.

        Returns False for a missing record, an expired token or a hash
        mismatch alike. Does not consume the token.
        """
        if not presented or not stored_hash:
            return False
        if self.is_expired(expires_at, now):
            return False
        return hmac.compare_digest(self.hash_token(presented), stored_hash)


def get_token_service() -> TokenService:
    """Get a token service configured from settings."""
    settings = get_settings()
    return TokenService(
        base_url=settings.app_url,
        ttl=timedelta(days=settings.check_in_token_ttl_days),
    )
