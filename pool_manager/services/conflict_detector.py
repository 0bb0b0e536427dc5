"""
Schedule Conflict Detector - player double-booking checks for proposed match times

Buffer policy (heuristic safety margins, not physical constraints):
- Existing match with a recorded end_time: occupies [scheduled_time, end_time)
- Existing match already started but never closed: assumed to end 45 minutes after start
- Existing match still in the future: occupies [scheduled_time, scheduled_time + 30min)

The proposed slot is [proposed, proposed + 30min) against concluded matches and
[proposed - 15min, proposed + 30min) against matches that are still pending.
A stale open match (no end_time, far in the past) is always treated as ended
45 minutes after its start; there is no staleness cutoff.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlmodel import Session, or_, select

from pool_manager.models.match import Match

logger = logging.getLogger(__name__)

# ============================================================================
# Buffer configuration
# ============================================================================

DEFAULT_BUFFER_MINUTES = 30
OPEN_PAST_MATCH_MINUTES = 45
PENDING_MATCH_LEAD_MINUTES = 15

DEFAULT_BUFFER = timedelta(minutes=DEFAULT_BUFFER_MINUTES)
OPEN_PAST_MATCH_DURATION = timedelta(minutes=OPEN_PAST_MATCH_MINUTES)
PENDING_MATCH_LEAD = timedelta(minutes=PENDING_MATCH_LEAD_MINUTES)

Window = Tuple[datetime, datetime]


# ============================================================================
# Window computation
# ============================================================================


def is_concluded(match: Match, now: datetime) -> bool:
    """A match is concluded once it has an end_time or its start is not in the future."""
    return match.end_time is not None or match.scheduled_time <= now


def effective_window(match: Match, now: datetime) -> Window:
    """[start, end) interval an existing match occupies for conflict purposes."""
    start = match.scheduled_time
    if match.end_time is not None:
        return start, match.end_time
    if start <= now:
        return start, start + OPEN_PAST_MATCH_DURATION
    return start, start + DEFAULT_BUFFER


def candidate_window(existing: Match, proposed_time: datetime, now: datetime) -> Window:
    """[start, end) interval the proposed match reserves relative to one existing match."""
    if is_concluded(existing, now):
        return proposed_time, proposed_time + DEFAULT_BUFFER
    return proposed_time - PENDING_MATCH_LEAD, proposed_time + DEFAULT_BUFFER


def _intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open interval overlap: [start1, end1) and [start2, end2)"""
    return start1 < end2 and end1 > start2


def is_time_conflicting(existing: Match, proposed_time: datetime, now: datetime) -> bool:
    match_start, match_end = effective_window(existing, now)
    proposed_start, proposed_end = candidate_window(existing, proposed_time, now)
    conflict = _intervals_overlap(proposed_start, proposed_end, match_start, match_end)
    if conflict:
        logger.debug(
            "Conflict: match %s (%s to %s) overlaps proposed window (%s to %s)",
            existing.id,
            match_start,
            match_end,
            proposed_start,
            proposed_end,
        )
    return conflict


# ============================================================================
# Conflict check
# ============================================================================


def split_by_player(
    player1_id: UUID, player2_id: UUID, matches: Iterable[Match]
) -> Tuple[List[Match], List[Match]]:
    """Partition matches into player1's set and the remaining matches of player2."""
    player1_matches: List[Match] = []
    player2_matches: List[Match] = []
    for match in matches:
        if match.involves(player1_id):
            player1_matches.append(match)
        elif match.involves(player2_id):
            player2_matches.append(match)
    return player1_matches, player2_matches


def find_conflicting_match(
    player1_id: UUID,
    player2_id: UUID,
    proposed_time: datetime,
    matches: Sequence[Match],
    now: datetime,
    exclude_match_id: Optional[UUID] = None,
) -> Optional[Match]:
    """
    Return the first existing match that collides with the proposed slot, or None.

    Args:
        matches: every match touching player1_id or player2_id
        exclude_match_id: match being rescheduled; never conflicts with itself
    """
    candidates = [m for m in matches if exclude_match_id is None or m.id != exclude_match_id]
    player1_matches, player2_matches = split_by_player(player1_id, player2_id, candidates)
    logger.debug(
        "Checking %d matches for player %s and %d more for player %s",
        len(player1_matches),
        player1_id,
        len(player2_matches),
        player2_id,
    )

    for match in player1_matches:
        if is_time_conflicting(match, proposed_time, now):
            return match
    for match in player2_matches:
        if is_time_conflicting(match, proposed_time, now):
            return match
    return None


def query_matches_touching_players(
    session: Session, player_ids: Sequence[UUID], exclude_match_id: Optional[UUID] = None
) -> List[Match]:
    """All matches where either side is one of player_ids, minus exclude_match_id."""
    ids = list(dict.fromkeys(player_ids))
    query = select(Match).where(or_(Match.player1_id.in_(ids), Match.player2_id.in_(ids)))
    if exclude_match_id is not None:
        query = query.where(Match.id != exclude_match_id)
    return list(session.exec(query).all())
