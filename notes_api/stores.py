import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from notes_api.errors import DuplicateEmail, InvalidToken, StorageError
from notes_api.models import Note, User, utc_now

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> str:
    """Trim and lowercase an email so comparisons ignore case and whitespace."""
    return (email or "").strip().lower()


def _violates(exc: IntegrityError, sqlstate: str, sqlite_phrase: str) -> bool:
    """Match a constraint violation by SQLSTATE (PostgreSQL drivers) or by the SQLite message."""
    orig = exc.orig
    if sqlstate in (getattr(orig, "pgcode", None), getattr(orig, "sqlstate", None)):
        return True
    return sqlite_phrase in str(orig).lower()


@contextmanager
def _storage_errors(db: Session, action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Store failure while %s", action)
        raise StorageError()


class CredentialStore:
    """Persists user records. Emails are unique after normalization."""

    def __init__(self, db: Session):
        self.db = db

    # PUBLIC_INTERFACE
    def create_user(self, name: Optional[str], email: str, password_hash: str) -> User:
        """
        Insert a user row.

        Raises:
            DuplicateEmail if the normalized email is already registered.
            StorageError on any other backend failure.
        """
        user = User(name=name, email=normalize_email(email), password_hash=password_hash)
        with _storage_errors(self.db, "creating user"):
            self.db.add(user)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                if _violates(exc, "23505", "unique constraint"):
                    raise DuplicateEmail()
                raise
            self.db.refresh(user)
        return user

    # PUBLIC_INTERFACE
    def find_user_by_email(self, email: str) -> Optional[User]:
        with _storage_errors(self.db, "fetching user"):
            return self.db.execute(
                select(User).where(User.email == normalize_email(email))
            ).scalar_one_or_none()


class NoteStore:
    """
    Persists notes. Every read and write is filtered by owner, so a guessed id
    never reaches another user's row.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    # PUBLIC_INTERFACE
    def insert(self, owner_id: int, title: str, content: str) -> Note:
        now = self.clock()
        note = Note(title=title, content=content, user_id=owner_id, created_at=now, updated_at=now)
        with _storage_errors(self.db, "creating note"):
            self.db.add(note)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                if not _violates(exc, "23503", "foreign key constraint"):
                    raise
                # The token was signed for a user this database does not have.
                logger.warning("Rejected note for unknown owner %s", owner_id)
                raise InvalidToken()
            created = self.get_by_id_for_owner(note.id, owner_id)
        if created is None:
            logger.error("Note %s vanished right after insert", note.id)
            raise StorageError()
        return created

    # PUBLIC_INTERFACE
    def list_by_owner(self, owner_id: int) -> List[Note]:
        """Notes of one owner, most recently updated first."""
        query = (
            select(Note)
            .where(Note.user_id == owner_id)
            .order_by(Note.updated_at.desc(), Note.id.desc())
        )
        with _storage_errors(self.db, "listing notes"):
            return list(self.db.execute(query).scalars().all())

    # PUBLIC_INTERFACE
    def get_by_id_for_owner(self, note_id: int, owner_id: int) -> Optional[Note]:
        query = select(Note).where(Note.id == note_id, Note.user_id == owner_id)
        with _storage_errors(self.db, "fetching note"):
            return self.db.execute(query).scalar_one_or_none()

    # PUBLIC_INTERFACE
    def update_by_id_for_owner(self, note_id: int, owner_id: int, title: str, content: str) -> bool:
        """Replace title and content and bump updated_at. True if a row matched."""
        statement = (
            update(Note)
            .where(Note.id == note_id, Note.user_id == owner_id)
            .values(title=title, content=content, updated_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        with _storage_errors(self.db, "updating note"):
            result = self.db.execute(statement)
            self.db.commit()
        return result.rowcount > 0

    # PUBLIC_INTERFACE
    def delete_by_id_for_owner(self, note_id: int, owner_id: int) -> bool:
        statement = (
            delete(Note)
            .where(Note.id == note_id, Note.user_id == owner_id)
            .execution_options(synchronize_session=False)
        )
        with _storage_errors(self.db, "deleting note"):
            result = self.db.execute(statement)
            self.db.commit()
        return result.rowcount > 0
