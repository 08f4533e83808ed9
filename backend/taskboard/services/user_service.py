"""User service — first-login registration, idempotent by identity-provider uid."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from taskboard.core.errors import ValidationError, ConflictError
from taskboard.models.user import User

logger = logging.getLogger(__name__)


async def register_user(
    db: AsyncSession,
    uid: str | None,
    email: str | None,
    display_name: str | None,
) -> bool:
    """Store the user profile unless this uid is already known.

    Returns True when a record was created, False when it already existed.
    Existing records are never modified.
    """
    if not uid or not email or not display_name:
        raise ValidationError("Missing required fields")

    if await _get_by_uid(db, uid) is not None:
        return False

    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        raise ConflictError("Email already registered")

    db.add(User(uid=uid, email=email, display_name=display_name))
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent first login for the same uid won the insert.
        await db.rollback()
        if await _get_by_uid(db, uid) is not None:
            return False
        raise ConflictError("Email already registered")

    logger.info("User registered uid=%s email=%s", uid, email)
    return True


async def _get_by_uid(db: AsyncSession, uid: str) -> User | None:
    result = await db.execute(select(User).where(User.uid == uid))
    return result.scalar_one_or_none()
