"""
Password hashing and bearer-token issuance/verification.

Both services are plain objects constructed once at startup from
``Settings`` and stored on ``app.state``; nothing here reads global
configuration, so tests can build them with whatever secret or work factor
they need.

Tokens are HS256 JWTs carrying ``sub`` (account id), ``role``, ``iat`` and
``exp``. The role is a snapshot taken at login: a role change in the
database does not reach existing tokens until the account logs in again.
There is no revocation list and no key rotation, so expiry is the only way
a token stops working and anyone holding the secret can mint tokens.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from miniboard.models import Role

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(days=7)


@dataclass(frozen=True)
class Principal:
    """The identity resolved from a verified token."""
    id: int
    role: Role


class InvalidToken(Exception):
    """The token failed signature, format, claim, or expiry checks."""


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

class PasswordHasher:
    """bcrypt with a fixed work factor. One-way: there is no decrypt."""

    # bcrypt ignores (bcrypt >= 5 rejects) input beyond this many bytes.
    MAX_SECRET_BYTES = 72

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        digest = bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))
        return digest.decode("ascii")

    def verify(self, plaintext: str, digest: str) -> bool:
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("ascii"))
        except (ValueError, UnicodeEncodeError):
            return False


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

class TokenService:
    """Issue and verify signed, time-boxed bearer tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = DEFAULT_TOKEN_TTL,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, account_id: int, role: Role, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(account_id),
            "role": Role(role).value,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Principal:
        """
        Decode *token* and return its principal.

        Raises ``InvalidToken`` when the signature does not match, the token
        or its claims are malformed, or the current time is at or past
        ``exp``.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "role", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken(f"invalid token: {exc}") from exc

        try:
            return Principal(id=int(payload["sub"]), role=Role(payload["role"]))
        except (TypeError, ValueError) as exc:
            raise InvalidToken("malformed token claims") from exc
