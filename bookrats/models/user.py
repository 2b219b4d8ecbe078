"""User model."""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookrats.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from bookrats.models.checkin import CheckIn
    from bookrats.models.group import GroupMember


class User(Base, UUIDMixin, TimestampMixin):
    """Local mirror of an identity-provider account."""

    __tablename__ = "users"

    # Subject of the identity provider token
    auth_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    avatar_url: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )
    has_seen_pwa_tutorial: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    memberships: Mapped[list["GroupMember"]] = relationship(
        "GroupMember",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    checkins: Mapped[list["CheckIn"]] = relationship(
        "CheckIn",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def display_name(self) -> str:
        return self.name or self.email

    def __repr__(self) -> str:
        return f"<User {self.email}>"
