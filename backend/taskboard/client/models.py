"""Client-side views of API records."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from taskboard.core.categories import Category

DEFAULT_DISPLAY_NAME = "Google User"


class BoardTask(BaseModel):
    """Immutable snapshot of one task as the board shows it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str
    description: str = ""
    category: Category
    order: int = 0
    user_email: str = Field(alias="userEmail")
    user_name: str | None = Field(None, alias="userName")
    user_photo: str | None = Field(None, alias="userPhoto")
    created_at: datetime | None = Field(None, alias="createdAt")


class Identity(BaseModel):
    """Signed-in user as reported by the identity provider."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    uid: str
    email: str
    display_name: str = Field(DEFAULT_DISPLAY_NAME, alias="displayName")
    photo_url: str | None = Field(None, alias="photoURL")

    @classmethod
    def from_provider(cls, payload: dict) -> "Identity":
        """Build from a provider user record.

        OAuth accounts may come back without a display name; those get a
        placeholder so registration still has all its fields.
        """
        return cls(
            uid=payload["uid"],
            email=payload["email"],
            display_name=payload.get("displayName") or DEFAULT_DISPLAY_NAME,
            photo_url=payload.get("photoURL"),
        )
