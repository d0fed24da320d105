from passlib.context import CryptContext
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Callable, Iterable, Optional, Tuple
import logging
import time
import jwt

ALGORITHM = "RS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30
BEARER_PREFIX = "Bearer "

logger = logging.getLogger(__name__)

# Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class Permission(str, Enum):
    GET_PROFILE = "get_profile"
    UPDATE_PROFILE = "update_profile"


# Granted on every successful login
LOGIN_PERMISSIONS = (Permission.GET_PROFILE, Permission.UPDATE_PROFILE)


class KeyLoadError(Exception):
    """The RSA key pair could not be loaded."""


class TokenIssueError(Exception):
    """A token could not be signed."""


class AuthenticationError(Exception):
    """Missing, malformed, invalid or expired bearer token."""


class AuthorizationError(Exception):
    """The verified identity lacks the required permission."""


@dataclass(frozen=True)
class Identity:
    """Caller identity taken from a verified token."""
    user_id: int
    permissions: Tuple[Permission, ...]

    def has_permission(self, permission: Permission) -> bool:
        return permission in self.permissions


def parse_bearer(authorization: Optional[str]) -> str:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header value.

    Raises:
        AuthenticationError: If the header is missing or not a bearer token
    """
    if not authorization:
        raise AuthenticationError("missing authorization header")
    if not authorization.startswith(BEARER_PREFIX) or not authorization[len(BEARER_PREFIX):].strip():
        raise AuthenticationError("token format is invalid")
    return authorization[len(BEARER_PREFIX):].strip()


def authorize(identity: Identity, permission: Permission) -> None:
    if not identity.has_permission(permission):
        raise AuthorizationError("not authorized: missing required permission")


class TokenService:
    """
    Issues and verifies RS256 JWTs.

    Holds the RSA key pair loaded once at startup; instances are read-only and
    safe to share between concurrent requests. ``clock`` returns the current
    Unix time and can be replaced in tests.
    """

    def __init__(
        self,
        private_key,
        public_key,
        ttl: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        clock: Callable[[], float] = time.time,
    ):
        self._private_key = private_key
        self._public_key = public_key
        self.ttl = ttl
        self._clock = clock

    @classmethod
    def from_files(
        cls,
        private_key_file: str,
        public_key_file: Optional[str] = None,
        passphrase: Optional[str] = None,
        ttl: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    ) -> "TokenService":
        """
        Load PEM encoded keys from disk.

        Args:
            private_key_file: Path to the RSA private key used for signing
            public_key_file: Path to the matching public key; derived from
                the private key when omitted
            passphrase: Passphrase of an encrypted private key
            ttl: Token lifetime

        Raises:
            KeyLoadError: If a file cannot be read or parsed, a key is not
                RSA, or the public key does not match the private key
        """
        password = passphrase.encode() if passphrase else None
        try:
            with open(private_key_file, "rb") as f:
                private_key = serialization.load_pem_private_key(f.read(), password=password)

            if public_key_file:
                with open(public_key_file, "rb") as f:
                    public_key = serialization.load_pem_public_key(f.read())
            else:
                public_key = private_key.public_key()
        except (OSError, ValueError, TypeError) as e:
            raise KeyLoadError(f"failed to load RSA keys: {e}") from e

        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise KeyLoadError(f"private key in {private_key_file} is not an RSA key")
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise KeyLoadError(f"public key in {public_key_file} is not an RSA key")
        if private_key.public_key().public_numbers() != public_key.public_numbers():
            raise KeyLoadError(f"public key in {public_key_file} does not match the private key")

        logger.info(
            "Loaded RSA keys: private=%s public=%s",
            private_key_file, public_key_file or "(derived from private key)"
        )
        return cls(private_key, public_key, ttl=ttl)

    def issue(self, user_id: int, permissions: Iterable[Permission]) -> str:
        """
        Sign a token for ``user_id``.

        Raises:
            TokenIssueError: If signing fails
        """
        # keep order, drop duplicates
        perms = list(dict.fromkeys(Permission(p).value for p in permissions))
        payload = {
            "user_id": user_id,
            "permissions": perms,
            "exp": int(self._clock() + self.ttl.total_seconds()),
        }
        try:
            return jwt.encode(payload, self._private_key, algorithm=ALGORITHM)
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise TokenIssueError(f"failed to generate token: {exc}") from exc

    def verify(self, token: str) -> Identity:
        """
        Verify signature and expiry of a token.

        Returns:
            Identity carried by the token

        Raises:
            AuthenticationError: If the token is invalid or expired
        """
        try:
            claims = jwt.decode(
                token,
                self._public_key,
                algorithms=[ALGORITHM],
                # expiry is checked below against the injectable clock
                options={"verify_exp": False, "require": ["exp", "user_id", "permissions"]},
            )
        except jwt.PyJWTError as exc:
            raise AuthenticationError("invalid token") from exc

        exp, user_id = claims["exp"], claims["user_id"]
        # bool is an int subclass; JSON true/false are not valid values here
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise AuthenticationError("invalid token")
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise AuthenticationError("invalid token")

        if self._clock() >= exp:
            raise AuthenticationError("JWT has expired")

        try:
            # claim order, duplicates dropped
            permissions = tuple(dict.fromkeys(Permission(p) for p in claims["permissions"]))
        except (TypeError, ValueError) as exc:
            raise AuthenticationError("token carries an unknown permission") from exc

        return Identity(user_id=user_id, permissions=permissions)

    def authenticate(self, authorization: Optional[str]) -> Identity:
        return self.verify(parse_bearer(authorization))
