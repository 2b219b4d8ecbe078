"""Member ranking by check-in count."""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from bookrats.models.group import GroupMember
from bookrats.services.streak import compute_streak, to_utc_day


@dataclass(frozen=True)
class RankingEntry:
    """Derived per-member standing. Recomputed on every read."""

    user_id: UUID
    name: str
    email: str
    avatar_url: str | None
    check_ins: int
    streak: int
    rank: int


def rank_members(
    members: Sequence[GroupMember],
    checkins: Iterable[tuple[UUID, date]],
    today: date | None = None,
) -> list[RankingEntry]:
    """Rank group members by total check-ins.

    Members are expected in membership order (joined_at ascending). The sort
    is stable, so members with equal counts keep that order and get
    consecutive positional ranks. Members without check-ins still appear
    with count 0 and streak 0. Check-ins by non-members are ignored.
    """
    dates_by_user: dict[UUID, list[date]] = defaultdict(list)
    for user_id, day in checkins:
        dates_by_user[user_id].append(to_utc_day(day))

    standings = []
    for member in members:
        dates = dates_by_user.get(member.user_id, [])
        standings.append((member, len(dates), compute_streak(dates, today=today)))

    standings.sort(key=lambda s: s[1], reverse=True)

    return [
        RankingEntry(
            user_id=member.user_id,
            name=member.user.name or member.user.email,
            email=member.user.email,
            avatar_url=member.user.avatar_url,
            check_ins=count,
            streak=streak,
            rank=position,
        )
        for position, (member, count, streak) in enumerate(standings, start=1)
    ]


def leader(rankings: Sequence[RankingEntry]) -> RankingEntry | None:
    """The rank 1 member, if any."""
    return rankings[0] if rankings else None


def find_entry(rankings: Sequence[RankingEntry], user_id: UUID) -> RankingEntry | None:
    """The viewer's own entry, falling back to the leader."""
    for entry in rankings:
        if entry.user_id == user_id:
            return entry
    return leader(rankings)
