"""Business logic services."""

from bookrats.services.auth import AuthError, AuthService
from bookrats.services.checkin import CheckinError, CheckinForm, CheckinService
from bookrats.services.group import GroupError, GroupService
from bookrats.services.ranking import RankingEntry, find_entry, leader, rank_members
from bookrats.services.storage import PhotoError, PhotoStorage, PhotoUpload
from bookrats.services.streak import compute_streak, utc_today
from bookrats.services.user import UserService

__all__ = [
    # Auth
    "AuthService",
    "AuthError",
    # User
    "UserService",
    # Group
    "GroupService",
    "GroupError",
    # Check-in
    "CheckinService",
    "CheckinError",
    "CheckinForm",
    # Aggregation
    "compute_streak",
    "utc_today",
    "rank_members",
    "RankingEntry",
    "leader",
    "find_entry",
    # Storage
    "PhotoStorage",
    "PhotoUpload",
    "PhotoError",
]
