from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from passlib.exc import PasswordValueError

from notes_api.errors import InvalidToken, MissingToken

# JWT settings
ALGORITHM = "HS256"

# OAuth2 bearer scheme - tokenUrl must match login path. auto_error is off so a
# missing header surfaces as MissingToken instead of FastAPI's default 401.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, as carried inside a verified token."""
    user_id: int
    email: str


class PasswordHasher:
    """Salted bcrypt hashing with a configurable cost factor."""

    def __init__(self, rounds: int = 12):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        """Hash a plaintext password."""
        return self.pwd_context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a plaintext password against its hash. Unhashable input never matches."""
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except PasswordValueError:
            return False

    def dummy_verify(self) -> None:
        """Spend one verification's worth of time without a stored hash."""
        self.pwd_context.dummy_verify()


class TokenCodec:
    """Issues and verifies signed bearer tokens."""

    def __init__(self, secret_key: str, expires_delta: timedelta = timedelta(days=7)):
        self.secret_key = secret_key
        self.expires_delta = expires_delta

    # PUBLIC_INTERFACE
    def issue(self, user_id: int, email: str, now: Optional[datetime] = None) -> str:
        """Create a signed JWT access token for the given user."""
        issued_at = now or datetime.now(tz=timezone.utc)
        to_encode = {
            "sub": str(user_id),
            "email": email,
            "exp": issued_at + self.expires_delta,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=ALGORITHM)

    # PUBLIC_INTERFACE
    def verify(self, token: Optional[str]) -> Identity:
        """
        Decode a bearer token into the caller's identity.

        Raises:
            MissingToken if no token was presented.
            InvalidToken if the signature, expiry, or claims do not check out.
        """
        if not token:
            raise MissingToken()
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
            subject = payload.get("sub")
            email = payload.get("email")
            if subject is None or not isinstance(email, str):
                raise InvalidToken()
            user_id = int(subject)
        except (JWTError, ValueError, TypeError):
            raise InvalidToken()
        return Identity(user_id=user_id, email=email)

