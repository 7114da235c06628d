"""User model keyed by the identity provider subject."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel


class User(SQLModel, table=True):
    """Local account row mirroring an authenticated identity-provider subject."""

    __tablename__: ClassVar[str] = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    sub: str = Field(nullable=False, unique=True, index=True, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    name: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    goals = Relationship(
        back_populates="user",
        sa_relationship=relationship("Goal", back_populates="user"),
    )
    tasks = Relationship(
        back_populates="user",
        sa_relationship=relationship("Task", back_populates="user"),
    )
