import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from notes_api.auth import Identity, PasswordHasher, TokenCodec, oauth2_scheme
from notes_api.config import Settings, configure_logging
from notes_api.database import Database, get_db
from notes_api.errors import NotesApiError, ValidationError
from notes_api.models import Note, User
from notes_api.schemas import (
    AuthResponse,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    MessageResponse,
    NoteResponse,
    NoteWriteRequest,
    RegisterRequest,
    UserResponse,
)
from notes_api.services import AuthResult, AuthService, NotesService
from notes_api.stores import CredentialStore, NoteStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "Missing or invalid token"}}
NOT_FOUND = {404: {"model": ErrorResponse, "description": "Note not found"}}
BAD_REQUEST = {400: {"model": ErrorResponse, "description": "Invalid input"}}

HEALTH = {"status": "OK", "message": "Notes API is running"}

# Largest id SQLite can bind as an INTEGER
MAX_NOTE_ID = 2 ** 63 - 1


def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    state = request.app.state
    return AuthService(CredentialStore(db), state.hasher, state.tokens)


def get_notes_service(db: Session = Depends(get_db)) -> NotesService:
    return NotesService(NoteStore(db))


# PUBLIC_INTERFACE
def get_current_identity(
    token: Optional[str] = Depends(oauth2_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Identity:
    """
    Dependency that returns the authenticated caller based on the bearer token.

    Raises:
        401 (MissingToken / InvalidToken) if credentials are absent or invalid.
    """
    return auth.verify_token(token)


def _auth_response(result: AuthResult) -> AuthResponse:
    user: User = result.user
    return AuthResponse(
        user=UserResponse(id=user.id, name=user.name, email=user.email),
        token=result.token,
    )


def _note_response(note: Note) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        title=note.title,
        content=note.content or "",
        user_id=note.user_id,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


# PUBLIC_INTERFACE
@router.get("/health", response_model=HealthResponse, tags=["Health"], summary="Health Check")
def health_check():
    """
    Health check endpoint. Requires no authentication.
    """
    return HEALTH


# -------- Auth Routes --------

# PUBLIC_INTERFACE
@router.post(
    "/auth/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**BAD_REQUEST, 409: {"model": ErrorResponse, "description": "Email already registered"}},
    tags=["Auth"],
    summary="Register a new user",
)
def register_user(payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """
    Register a new user and log them in.

    Body:
        name: display name, at least 2 characters
        email: valid email address (case-insensitive)
        password: plaintext password, at least 6 characters
        confirmPassword: must equal password

    Returns:
        AuthResponse with the new user and a bearer token.
    """
    result = auth.register(payload.name, payload.email, payload.password, payload.confirm_password)
    return _auth_response(result)


# PUBLIC_INTERFACE
@router.post(
    "/auth/login",
    response_model=AuthResponse,
    responses={**BAD_REQUEST, 401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    tags=["Auth"],
    summary="Login and obtain a bearer token",
)
def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """
    Login with email and password.

    Raises:
        401 on invalid credentials, whether the email is unknown or the password wrong.
    """
    return _auth_response(auth.login(payload.email, payload.password))


# -------- Notes Routes --------

# PUBLIC_INTERFACE
@router.get(
    "/notes",
    response_model=List[NoteResponse],
    responses=UNAUTHORIZED,
    tags=["Notes"],
    summary="List the caller's notes",
)
def list_notes(
    identity: Identity = Depends(get_current_identity),
    notes: NotesService = Depends(get_notes_service),
):
    """
    List notes belonging to the current user, most recently updated first.
    """
    return [_note_response(n) for n in notes.list(identity.user_id)]


# PUBLIC_INTERFACE
@router.post(
    "/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**BAD_REQUEST, **UNAUTHORIZED},
    tags=["Notes"],
    summary="Create a new note",
)
def create_note(
    payload: NoteWriteRequest,
    identity: Identity = Depends(get_current_identity),
    notes: NotesService = Depends(get_notes_service),
):
    """
    Create a new note for the authenticated user.

    Body:
        title: note title
        content: note content
    """
    return _note_response(notes.create(identity.user_id, payload.title, payload.content))


# PUBLIC_INTERFACE
@router.get(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={**UNAUTHORIZED, **NOT_FOUND},
    tags=["Notes"],
    summary="Get a note by ID",
)
def get_note(
    note_id: int = Path(..., ge=1, le=MAX_NOTE_ID),
    identity: Identity = Depends(get_current_identity),
    notes: NotesService = Depends(get_notes_service),
):
    """
    Retrieve a single note by ID. Only the owner can access it.
    """
    return _note_response(notes.get(identity.user_id, note_id))


# PUBLIC_INTERFACE
@router.put(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={**BAD_REQUEST, **UNAUTHORIZED, **NOT_FOUND},
    tags=["Notes"],
    summary="Update a note by ID",
)
def update_note(
    payload: NoteWriteRequest,
    note_id: int = Path(..., ge=1, le=MAX_NOTE_ID),
    identity: Identity = Depends(get_current_identity),
    notes: NotesService = Depends(get_notes_service),
):
    """
    Replace a note's title and content. Only the owner can modify it.
    """
    return _note_response(notes.update(identity.user_id, note_id, payload.title, payload.content))


# PUBLIC_INTERFACE
@router.delete(
    "/notes/{note_id}",
    response_model=MessageResponse,
    responses={**UNAUTHORIZED, **NOT_FOUND},
    tags=["Notes"],
    summary="Delete a note by ID",
)
def delete_note(
    note_id: int = Path(..., ge=1, le=MAX_NOTE_ID),
    identity: Identity = Depends(get_current_identity),
    notes: NotesService = Depends(get_notes_service),
):
    """
    Delete a note. Only the owner can delete it.
    """
    notes.delete(identity.user_id, note_id)
    return {"message": "Note deleted successfully"}


# -------- Error handlers --------

def handle_api_error(request: Request, exc: NotesApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    error = ValidationError("; ".join(problems) or None)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the notes API application.

    Opens the database and applies the additive schema migration, so a
    misconfigured deployment fails here rather than on the first request.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    secret = settings.signing_secret()

    database = Database(settings.database_url)
    database.migrate()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        database.dispose()

    app = FastAPI(
        title="Notes API",
        description="Personal notes backend with bearer-token auth and per-user CRUD.",
        version="1.0.0",
        openapi_tags=[
            {"name": "Health", "description": "Service health and status."},
            {"name": "Auth", "description": "User registration and authentication."},
            {"name": "Notes", "description": "CRUD operations for notes."},
        ],
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.tokens = TokenCodec(
        secret, expires_delta=timedelta(minutes=settings.access_token_expire_minutes)
    )

    # CORS setup - allow frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(NotesApiError, handle_api_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)

    app.include_router(router)
    app.add_api_route("/", health_check, methods=["GET"], response_model=HealthResponse, tags=["Health"])

    logger.info("Notes API configured (environment=%s)", settings.environment)
    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = Settings.from_env()
    uvicorn.run("notes_api.main:create_app", factory=True, host=settings.host, port=settings.port)
