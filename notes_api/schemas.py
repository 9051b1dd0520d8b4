from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# Auth

class RegisterRequest(BaseModel):
    """Request model to register a new user. Rules are enforced by AuthService."""
    name: Optional[str] = Field(None, description="Display name (min 2 chars)")
    email: Optional[str] = Field(None, description="User email")
    password: Optional[str] = Field(None, description="Plaintext password (min 6 chars)")
    confirm_password: Optional[str] = Field(
        None, alias="confirmPassword", description="Must equal password"
    )

    class Config:
        populate_by_name = True


class LoginRequest(BaseModel):
    """Login request"""
    email: Optional[str] = Field(None, description="User email")
    password: Optional[str] = Field(None, description="Plaintext password")


class UserResponse(BaseModel):
    """User response without sensitive fields"""
    id: int
    name: Optional[str] = None
    email: str

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Response for successful registration or login"""
    user: UserResponse
    token: str = Field(..., description="JWT bearer token")


# Notes

class NoteWriteRequest(BaseModel):
    """Create or replace a note. Title rules are enforced by NotesService."""
    title: Optional[str] = Field(None, description="Note title (1-255 chars after trimming)")
    content: Optional[str] = Field("", description="Note content")


class NoteResponse(BaseModel):
    """Note response model"""
    id: int
    title: str
    content: str
    user_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    message: str


class ErrorResponse(BaseModel):
    """Body of every error response"""
    error: str = Field(..., description="Human-readable message")
    kind: str = Field(..., description="Machine-readable error kind")
