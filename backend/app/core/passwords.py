"""Password hashing, verification and policy.

Pipeline:
- PasswordHasher.hash: bcrypt with random per-call salt + work factor
- PasswordHasher.verify: constant-time check, False on any malformed input
- PasswordHasher.verify_dummy: equalizes response time for unknown accounts
- password_policy_errors: format rules (sync, no network)
"""

from functools import lru_cache

import bcrypt

# bcrypt only looks at the first 72 bytes; bcrypt>=5 rejects longer input
_BCRYPT_MAX_BYTES = 72

_DEFAULT_ROUNDS = 12


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> bytes:
    """bcrypt hash of a random value at the given cost.

    Security: compared against on user-not-found so the response time
    matches a real password check. Cached per cost factor.
    """
    return bcrypt.hashpw(b"dummy-password-for-timing", bcrypt.gensalt(rounds=rounds))


class PasswordHasher:
    """One-way salted password hashing.

    Never logs or stores plaintext.

    Attributes:
        rounds: bcrypt cost factor (log2 of iterations).
    """

    def __init__(self, rounds: int = _DEFAULT_ROUNDS) -> None:
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        """Hash a password with a fresh salt.

        Args:
            plaintext: Password to hash. Must satisfy the password policy
                (at most 72 bytes encoded).

        Returns:
            bcrypt hash string (``$2b$...``).
        """
        return bcrypt.hashpw(
            plaintext.encode(), bcrypt.gensalt(rounds=self.rounds)
        ).decode()

    def verify(self, plaintext: str, password_hash: str) -> bool:
        """Check a password against a stored hash.

        Returns False instead of raising for malformed hashes, non-string
        input or over-long passwords.
        """
        try:
            return bcrypt.checkpw(plaintext.encode(), password_hash.encode())
        except (ValueError, TypeError, AttributeError):
            return False

    def verify_dummy(self, plaintext: str) -> None:
        """Burn one bcrypt comparison with no account behind it.

        Security: call on user-not-found so login timing does not reveal
        whether an email is registered.
        """
        self.verify(plaintext, _dummy_hash(self.rounds).decode())


def password_policy_errors(password: str, min_length: int = 6) -> list[str]:
    """List the policy rules a password breaks.

    Only length is enforced: no digit, case or symbol requirements.

    Args:
        password: Plain-text password to check.
        min_length: Minimum number of characters.

    Returns:
        Human-readable problems; empty when the password is acceptable.
    """
    errors: list[str] = []
    if len(password) < min_length:
        errors.append(f"Passwords must be at least {min_length} characters.")
    if len(password.encode()) > _BCRYPT_MAX_BYTES:
        errors.append(f"Passwords must be at most {_BCRYPT_MAX_BYTES} bytes.")
    return errors
