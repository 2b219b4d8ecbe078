"""Daily reading check-in model."""

import uuid
import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookrats.models.base import Base, UUIDMixin, utcnow

if TYPE_CHECKING:
    from bookrats.models.group import Group
    from bookrats.models.user import User


CHECKIN_UNIQUE_CONSTRAINT = "uq_checkin_group_user_date"


class CheckIn(Base, UUIDMixin):
    """One member's reading record for one UTC calendar day in one group."""

    __tablename__ = "checkins"

    group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # UTC calendar day
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    book_title: Mapped[str | None] = mapped_column(String(300), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    picture_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    pages_read: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    chapters_read: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    group: Mapped["Group"] = relationship("Group", back_populates="checkins")
    user: Mapped["User"] = relationship("User", back_populates="checkins", lazy="selectin")

    __table_args__ = (
        # one check-in per member per day per group
        UniqueConstraint("group_id", "user_id", "date", name=CHECKIN_UNIQUE_CONSTRAINT),
        Index("ix_checkin_group_created", "group_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<CheckIn group={self.group_id} user={self.user_id} date={self.date}>"
