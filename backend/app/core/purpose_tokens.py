"""Single-purpose tokens for email confirmation and password reset.

Tokens are never stored. Each one is an itsdangerous timed signature over
{uid, stamp} where the purpose is mixed into the salt, so:
- A token only verifies for the user it was minted for
- An email-confirmation token can't be replayed as a password-reset token
- Rotating the user's security stamp (password change) kills every
  outstanding token for that user
- Tokens expire after a fixed age (24 hours by default)

Output uses the URL-safe base64 alphabet and can be dropped into a query
string as-is.
"""

import hashlib
import hmac
import time
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Protocol

from itsdangerous import BadData, TimestampSigner, URLSafeTimedSerializer

from app.core.config import Settings

_SALT_PREFIX = "sheroshayari.purpose-token"

_DEFAULT_TTL_SECONDS = 24 * 60 * 60


class TokenPurpose(Enum):
    """Operation a purpose token authorizes."""

    EMAIL_CONFIRMATION = "EmailConfirmation"
    PASSWORD_RESET = "ResetPassword"


class StampedUser(Protocol):
    """Anything with an id and a security stamp (e.g. the User model)."""

    id: str
    security_stamp: str


class _ClockedTimestampSigner(TimestampSigner):
    """TimestampSigner whose notion of "now" can be injected."""

    def __init__(self, *args, clock: Callable[[], float] = time.time, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._clock = clock

    def get_timestamp(self) -> int:
        return int(self._clock())


def _same(a: object, b: str) -> bool:
    return isinstance(a, str) and hmac.compare_digest(a.encode(), b.encode())


class PurposeTokenService:
    """Generates and verifies purpose-bound tokens.

    Attributes:
        ttl_seconds: Maximum token age accepted by verify().
    """

    def __init__(
        self,
        secret_keys: Sequence[str],
        *,
        ttl_seconds: int = _DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the service.

        Args:
            secret_keys: Signing keys, oldest first. The last key signs new
                tokens; all keys are accepted during verification.
            ttl_seconds: Token lifetime in seconds.
            clock: Returns the current Unix time. Injectable for tests.
        """
        if not secret_keys:
            msg = "At least one secret key is required"
            raise ValueError(msg)
        self._secret_keys = list(secret_keys)
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "PurposeTokenService":
        """Build a service from application settings."""
        return cls(
            settings.signing_secrets,
            ttl_seconds=settings.purpose_token_ttl_hours * 60 * 60,
        )

    def _serializer(self, purpose: TokenPurpose) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(
            self._secret_keys,
            salt=f"{_SALT_PREFIX}.{purpose.value}",
            signer=_ClockedTimestampSigner,
            signer_kwargs={"clock": self._clock, "digest_method": hashlib.sha256},
        )

    def generate(self, user: StampedUser, purpose: TokenPurpose) -> str:
        """Mint a token for one user and one purpose.

        Args:
            user: Account the token is bound to.
            purpose: Operation the token authorizes.

        Returns:
            URL-safe token string.
        """
        payload = {"uid": user.id, "stamp": user.security_stamp}
        return self._serializer(purpose).dumps(payload)

    def verify(self, user: StampedUser, purpose: TokenPurpose, token: str) -> bool:
        """Check a token against a user and purpose.

        Never raises: expired, malformed, tampered, wrong-purpose,
        wrong-user and stale-stamp tokens all return False.
        """
        if not token:
            return False
        try:
            data = self._serializer(purpose).loads(token, max_age=self.ttl_seconds)
        except BadData:
            return False
        if not isinstance(data, dict):
            return False
        return _same(data.get("uid"), user.id) and _same(
            data.get("stamp"), user.security_stamp
        )
