"""API routers."""

from bookrats.api import auth, checkins, groups, invites, users

__all__ = ["auth", "checkins", "groups", "invites", "users"]
