"""Bearer token issuance and validation.

Tokens are compact HS256 JWTs over a fixed claim set
{sub, email, name, iss, aud, iat, exp}. Validation uses zero leeway and
PyJWT's expiry rule, so a token is rejected from the second its exp is
reached (now >= exp), not one second later.
"""

import hmac
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

import jwt
from jwt.utils import base64url_encode

from app.core.config import Settings

_ALGORITHM = "HS256"

# Every claim must be present; a token missing any of them is malformed.
_REQUIRED_CLAIMS = ["sub", "email", "name", "iss", "aud", "iat", "exp"]

_DEFAULT_TTL = timedelta(minutes=60)


class TokenError(Enum):
    """Why a bearer token was rejected."""

    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    INVALID_ISSUER = "invalid_issuer"
    INVALID_AUDIENCE = "invalid_audience"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class AccessTokenClaims:
    """Typed claims carried by a bearer token.

    Attributes:
        sub: User id.
        email: Account email at issuance.
        name: Display name at issuance.
        iss: Issuer.
        aud: Audience.
        iat: Issued-at (Unix seconds).
        exp: Expiry (Unix seconds). Always greater than iat.
    """

    sub: str
    email: str
    name: str
    iss: str
    aud: str
    iat: int
    exp: int


def _utc_now() -> datetime:
    return datetime.now(UTC)


class AccessTokenIssuer:
    """Mints and checks signed, time-bounded bearer tokens.

    Holds only the symmetric key and the expected issuer/audience, so one
    instance can be shared across requests.
    """

    def __init__(
        self,
        *,
        secret: str,
        issuer: str,
        audience: str,
        default_ttl: timedelta = _DEFAULT_TTL,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.default_ttl = default_ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccessTokenIssuer":
        """Build an issuer from application settings."""
        return cls(
            secret=settings.auth_secret.get_secret_value(),
            issuer=settings.auth_issuer,
            audience=settings.auth_audience,
            default_ttl=timedelta(minutes=settings.access_token_ttl_minutes),
        )

    def issue(
        self,
        user_id: str,
        email: str,
        display_name: str,
        ttl: timedelta | None = None,
    ) -> str:
        """Create a signed bearer token.

        Args:
            user_id: Value for the sub claim.
            email: Account email.
            display_name: Value for the name claim.
            ttl: Lifetime. Defaults to the issuer's default TTL.

        Returns:
            Encoded JWT string.

        Raises:
            ValueError: If ttl is shorter than one second.
        """
        lifetime = int((ttl or self.default_ttl).total_seconds())
        if lifetime < 1:
            msg = "Token lifetime must be at least one second"
            raise ValueError(msg)

        # PyJWT encodes numeric dates as integer seconds; truncate up front
        # so exp - iat is exactly the requested lifetime.
        issued_at = int(self._clock().timestamp())
        payload = {
            "sub": user_id,
            "email": email,
            "name": display_name,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": issued_at,
            "exp": issued_at + lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def validate(self, token: str) -> AccessTokenClaims | TokenError:
        """Verify a bearer token and extract its claims.

        Checks signature first, then exp, iss and aud with no clock skew.
        Any change to a well-formed token, in any segment, is reported as
        INVALID_SIGNATURE rather than as a parse failure.

        Args:
            token: Encoded JWT string.

        Returns:
            Parsed claims on success, otherwise the reason for rejection.
        """
        if not self._signature_matches(token):
            return TokenError.INVALID_SIGNATURE

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                leeway=0,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            return TokenError.EXPIRED
        except jwt.InvalidSignatureError:
            return TokenError.INVALID_SIGNATURE
        except jwt.InvalidIssuerError:
            return TokenError.INVALID_ISSUER
        except jwt.InvalidAudienceError:
            return TokenError.INVALID_AUDIENCE
        except jwt.InvalidTokenError:
            # DecodeError, MissingRequiredClaimError, ImmatureSignatureError
            # (iat in the future), wrong algorithm, ...
            return TokenError.MALFORMED

        try:
            claims = AccessTokenClaims(
                sub=str(payload["sub"]),
                email=str(payload["email"]),
                name=str(payload["name"]),
                iss=str(payload["iss"]),
                aud=str(payload["aud"]),
                iat=int(payload["iat"]),
                exp=int(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError):
            return TokenError.MALFORMED

        if claims.exp <= claims.iat:
            return TokenError.MALFORMED
        return claims

    def _signature_matches(self, token: str) -> bool:
        """Compare the HS256 signature before the header and payload are parsed.

        Only tokens with three non-empty segments are checked here; anything
        else is left to jwt.decode and comes back as MALFORMED.
        """
        segments = token.split(".")
        if len(segments) != 3 or not all(segments):
            return True

        header, payload, signature = segments
        expected = base64url_encode(
            hmac.new(
                self._secret.encode(),
                f"{header}.{payload}".encode(),
                "sha256",
            ).digest()
        )
        # Compared in encoded form so non-canonical base64 of the right
        # bytes (e.g. an altered final character) is still a mismatch.
        return hmac.compare_digest(expected, signature.encode())
