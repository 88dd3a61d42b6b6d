"""SQLAlchemy ORM models for Valentine pages.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Column types are kept portable (JSON, Uuid, DateTime) so the same models
serve PostgreSQL in production and SQLite in local runs and tests.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Constraint names are part of the contract: the acceptance store classifies
# integrity errors by them.
YES_EVENTS_PAGE_UNIQUE = "uq_yes_events_page_id"
PAGE_ID_LENGTH = 10


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ValentinePage(Base):
    """A created Valentine greeting.

    Immutable once created. creator_email is private: it is read only by the
    notification service and never returned by the public page view.
    """

    __tablename__ = "valentine_pages"

    id: Mapped[str] = mapped_column(String(PAGE_ID_LENGTH), primary_key=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    begging_messages: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    final_message: Mapped[str] = mapped_column(Text, nullable=False)
    social_label: Mapped[str | None] = mapped_column(Text, nullable=True)
    social_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    sender_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    creator_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    theme: Mapped[str] = mapped_column(Text, nullable=False, server_default="pink")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    yes_event: Mapped["YesEvent | None"] = relationship(
        "YesEvent", back_populates="page", uselist=False, cascade="all, delete-orphan"
    )


class YesEvent(Base):
    """The single acceptance of a page.

    At most one row per page, enforced by uq_yes_events_page_id. A second
    insert is rejected by the database, never by an application-side check.
    """

    __tablename__ = "yes_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    page_id: Mapped[str] = mapped_column(
        String(PAGE_ID_LENGTH),
        ForeignKey("valentine_pages.id", ondelete="CASCADE"),
        nullable=False,
    )
    clicked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    screenshot_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (UniqueConstraint("page_id", name=YES_EVENTS_PAGE_UNIQUE),)

    page: Mapped["ValentinePage"] = relationship("ValentinePage", back_populates="yes_event")
