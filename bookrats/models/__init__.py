"""Database models."""

from bookrats.models.base import Base, TimestampMixin, UUIDMixin
from bookrats.models.checkin import CHECKIN_UNIQUE_CONSTRAINT, CheckIn
from bookrats.models.group import Group, GroupMember, generate_invite_code
from bookrats.models.user import User

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # User
    "User",
    # Group
    "Group",
    "GroupMember",
    "generate_invite_code",
    # Check-in
    "CheckIn",
    "CHECKIN_UNIQUE_CONSTRAINT",
]
