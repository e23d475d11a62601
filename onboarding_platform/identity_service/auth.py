from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
import jwt

from .exceptions import ConfigurationError

DEFAULT_HASH_ROUNDS = 29000
SESSION_TOKEN_TTL = timedelta(hours=24)


class PasswordHasher:
    """
    One-way salted password hashing.

    Every call to ``hash`` embeds a fresh random salt, so hashing the same
    password twice gives two different strings. Verification compares
    digests in constant time.
    """

    def __init__(self, rounds: int = DEFAULT_HASH_ROUNDS):
        # Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
        self._context = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__default_rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: Optional[str]) -> bool:
        """
        Check a candidate password against a stored hash.

        Returns False (rather than raising) when the stored value is empty
        or was not produced by this hasher.
        """
        if not hashed_password:
            return False
        try:
            return self._context.verify(password, hashed_password)
        except (ValueError, TypeError):
            return False


class SessionTokenIssuer:
    """
    Mints signed bearer tokens carrying the account id and account type.

    The expiry is embedded in the signed payload; enforcing it is the job of
    whoever verifies the token.
    """

    def __init__(
        self,
        signing_key: str,
        algorithm: str = "HS256",
        ttl: timedelta = SESSION_TOKEN_TTL,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not signing_key:
            raise ConfigurationError("A session signing key is required")
        self._signing_key = signing_key
        self._algorithm = algorithm
        self._ttl = ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def issue(self, account_id: str, account_type: str) -> str:
        issued_at = self._clock()
        payload = {
            "sub": account_id,
            "account_type": account_type,
            "iat": issued_at,
            "exp": issued_at + self._ttl,
        }
        return jwt.encode(payload, self._signing_key, algorithm=self._algorithm)

    def decode(self, token: str, verify_exp: bool = True) -> dict:
        """
        Decode and verify a session token returning its payload.

        Raises:
            jwt.PyJWTError: If the signature is wrong or the token expired
        """
        return jwt.decode(
            token,
            self._signing_key,
            algorithms=[self._algorithm],
            options={"verify_exp": verify_exp},
        )
