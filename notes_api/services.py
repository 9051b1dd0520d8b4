import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from notes_api.auth import Identity, PasswordHasher, TokenCodec
from notes_api.errors import InvalidCredentials, NotFound, ValidationError
from notes_api.models import TITLE_MAX_LENGTH, Note, User
from notes_api.stores import CredentialStore, NoteStore, normalize_email

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_MIN_LENGTH = 2
PASSWORD_MIN_LENGTH = 6


@dataclass
class AuthResult:
    user: User
    token: str


class AuthService:
    """Registration, login, and bearer token handling."""

    def __init__(self, credentials: CredentialStore, hasher: PasswordHasher, tokens: TokenCodec):
        self.credentials = credentials
        self.hasher = hasher
        self.tokens = tokens

    # PUBLIC_INTERFACE
    def register(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> AuthResult:
        """
        Validate the registration form, store the user and issue a token.

        Checks run in order and stop at the first failure: name, email
        syntax, password length, NUL-free password, password confirmation.

        Raises:
            ValidationError, DuplicateEmail, StorageError.
        """
        trimmed_name = (name or "").strip()
        if len(trimmed_name) < NAME_MIN_LENGTH:
            raise ValidationError("Name must be at least 2 characters")
        normalized_email = normalize_email(email)
        if not EMAIL_PATTERN.match(normalized_email):
            raise ValidationError("Invalid email format")
        password = password or ""
        if len(password) < PASSWORD_MIN_LENGTH:
            raise ValidationError("Password must be at least 6 characters")
        # bcrypt cannot hash NUL bytes
        if "\0" in password:
            raise ValidationError("Password must not contain NUL characters")
        if password != (confirm_password or ""):
            raise ValidationError("Passwords do not match")

        password_hash = self.hasher.hash(password)
        user = self.credentials.create_user(trimmed_name, normalized_email, password_hash)
        logger.info("Registered user %s", user.id)
        return AuthResult(user=user, token=self.issue_token(user))

    # PUBLIC_INTERFACE
    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        """
        Authenticate by email and password.

        Unknown emails and wrong passwords fail the same way, and both cost
        one hash verification.
        """
        if not email or not password:
            raise ValidationError("Email and password are required")
        user = self.credentials.find_user_by_email(email)
        if user is None:
            self.hasher.dummy_verify()
            logger.info("Failed login attempt")
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.password_hash):
            logger.info("Failed login attempt for user %s", user.id)
            raise InvalidCredentials()
        return AuthResult(user=user, token=self.issue_token(user))

    def issue_token(self, user: User) -> str:
        return self.tokens.issue(user.id, user.email)

    def verify_token(self, token: Optional[str]) -> Identity:
        return self.tokens.verify(token)


def _clean_title(title: Optional[str]) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Title is required")
    if len(cleaned) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return cleaned


class NotesService:
    """Note operations, always scoped to the owning user."""

    def __init__(self, notes: NoteStore):
        self.notes = notes

    # PUBLIC_INTERFACE
    def create(self, owner_id: int, title: Optional[str], content: Optional[str] = None) -> Note:
        cleaned = _clean_title(title)
        return self.notes.insert(owner_id, cleaned, content or "")

    # PUBLIC_INTERFACE
    def list(self, owner_id: int) -> List[Note]:
        return self.notes.list_by_owner(owner_id)

    # PUBLIC_INTERFACE
    def get(self, owner_id: int, note_id: int) -> Note:
        note = self.notes.get_by_id_for_owner(note_id, owner_id)
        if note is None:
            raise NotFound("Note not found")
        return note

    # PUBLIC_INTERFACE
    def update(self, owner_id: int, note_id: int, title: Optional[str], content: Optional[str] = None) -> Note:
        """
        Replace a note's title and content.

        Raises:
            ValidationError for a bad title, NotFound when the id is unknown or
            belongs to someone else.
        """
        cleaned = _clean_title(title)
        if not self.notes.update_by_id_for_owner(note_id, owner_id, cleaned, content or ""):
            raise NotFound("Note not found")
        return self.get(owner_id, note_id)

    # PUBLIC_INTERFACE
    def delete(self, owner_id: int, note_id: int) -> None:
        if not self.notes.delete_by_id_for_owner(note_id, owner_id):
            raise NotFound("Note not found")
