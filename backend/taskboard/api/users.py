"""User API endpoints — registration on first login."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from pydantic.networks import validate_email
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.database import get_db
from taskboard.services.user_service import register_user

router = APIRouter(prefix="/api/users", tags=["users"])


# --- Schemas ---

class RegisterUserRequest(BaseModel):
    uid: str | None = None
    email: str | None = None
    display_name: str | None = Field(None, alias="displayName")

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str | None) -> str | None:
        # Stored verbatim: task owners are keyed by the exact address.
        if value:
            validate_email(value)
        return value


# --- Routes ---

@router.post("")
async def api_register_user(body: RegisterUserRequest, db: AsyncSession = Depends(get_db)):
    """Register the signed-in user. Repeat calls for the same uid are no-ops."""
    created = await register_user(db, body.uid, body.email, body.display_name)
    if not created:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"success": True, "message": "User already exists"},
        )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"success": True, "message": "User registered successfully"},
    )
