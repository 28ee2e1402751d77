"""SQLAlchemy ORM models for the comments store.

Defines the two tables using SQLAlchemy 2.x declarative patterns.
Column types are portable (Uuid, DateTime) so the same models run against
PostgreSQL in deployment and SQLite in tests.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Constraint names, referenced when remapping IntegrityError
UQ_USERS_PRIVY_USER_ID = "uq_users_privy_user_id"
CK_COMMENTS_TEXT_LENGTH = "ck_comments_text_length"
FK_COMMENTS_USER_ID = "fk_comments_user_id"


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class User(Base):
    """Internal identity record.

    privy_user_id is the external identity subject and is unique.
    The internal id never changes after creation.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    privy_user_id: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    comments: Mapped[list["Comment"]] = relationship("Comment", back_populates="user")

    __table_args__ = (UniqueConstraint("privy_user_id", name=UQ_USERS_PRIVY_USER_ID),)


class Comment(Base):
    """A single text annotation on a playlist, or on a track within it.

    track_uri NULL means the comment is about the whole playlist.
    user_id NULL marks a legacy/anonymous row that nobody can delete
    through the API.
    """

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    playlist_id: Mapped[str] = mapped_column(Text, nullable=False)
    track_uri: Mapped[str | None] = mapped_column(Text, nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL", name=FK_COMMENTS_USER_ID),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    user: Mapped[User | None] = relationship("User", back_populates="comments")

    __table_args__ = (
        CheckConstraint(
            "length(text) >= 1 AND length(text) <= 500",
            name=CK_COMMENTS_TEXT_LENGTH,
        ),
        Index("ix_comments_playlist_track_created", "playlist_id", "track_uri", "created_at"),
    )
