"""Task model — one card on an owner's board."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.core.categories import TITLE_MAX_LENGTH, DESCRIPTION_MAX_LENGTH
from taskboard.core.database import Base


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str] = mapped_column(String(DESCRIPTION_MAX_LENGTH), default="")
    category: Mapped[str] = mapped_column(String(20), nullable=False)  # To-Do, In Progress, Done

    # Owner, denormalized from the identity provider at creation time
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    user_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_photo: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    # Rank within (user_email, category); dense from 0 on a best-effort basis
    order: Mapped[int] = mapped_column("order", Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_tasks_owner_category_order", "user_email", "category", "order"),
    )
