"""
Tests for the schedule conflict detector: window arithmetic at the exact boundaries.
"""

import uuid
from datetime import datetime, timedelta

from pool_manager.models.match import Match
from pool_manager.services.conflict_detector import (
    candidate_window,
    effective_window,
    find_conflicting_match,
    is_concluded,
    split_by_player,
)

P = uuid.uuid4()
Q = uuid.uuid4()
OTHER = uuid.uuid4()


def _match(start: datetime, end: datetime | None = None, p1=P, p2=OTHER) -> Match:
    return Match(id=uuid.uuid4(), scheduled_time=start, end_time=end, player1_id=p1, player2_id=p2)


class TestWindows:
    NOW = datetime(2024, 1, 1, 12, 0)

    def test_future_match_window_is_default_buffer(self):
        m = _match(datetime(2024, 1, 1, 14, 0))
        assert not is_concluded(m, self.NOW)
        assert effective_window(m, self.NOW) == (datetime(2024, 1, 1, 14, 0), datetime(2024, 1, 1, 14, 30))

    def test_ended_match_uses_recorded_end(self):
        m = _match(datetime(2024, 1, 1, 8, 0), datetime(2024, 1, 1, 9, 0))
        assert is_concluded(m, self.NOW)
        assert effective_window(m, self.NOW) == (datetime(2024, 1, 1, 8, 0), datetime(2024, 1, 1, 9, 0))

    def test_open_past_match_assumed_45_minutes(self):
        m = _match(datetime(2024, 1, 1, 10, 0))
        assert is_concluded(m, self.NOW)
        assert effective_window(m, self.NOW) == (datetime(2024, 1, 1, 10, 0), datetime(2024, 1, 1, 10, 45))

    def test_stale_open_match_has_no_cutoff(self):
        m = _match(datetime(2020, 1, 1, 10, 0))
        assert effective_window(m, self.NOW)[1] == datetime(2020, 1, 1, 10, 45)

    def test_match_starting_now_counts_as_started(self):
        m = _match(self.NOW)
        assert is_concluded(m, self.NOW)
        assert effective_window(m, self.NOW)[1] == self.NOW + timedelta(minutes=45)

    def test_candidate_window_has_lead_only_against_pending_matches(self):
        proposed = datetime(2024, 1, 1, 15, 0)
        pending = _match(datetime(2024, 1, 1, 14, 0))
        concluded = _match(datetime(2024, 1, 1, 8, 0), datetime(2024, 1, 1, 9, 0))

        assert candidate_window(pending, proposed, self.NOW) == (
            datetime(2024, 1, 1, 14, 45),
            datetime(2024, 1, 1, 15, 30),
        )
        assert candidate_window(concluded, proposed, self.NOW) == (proposed, datetime(2024, 1, 1, 15, 30))


class TestFutureMatchConflicts:
    """Existing match at 14:00 with no end time, evaluated at 12:00."""

    NOW = datetime(2024, 1, 1, 12, 0)
    EXISTING = _match(datetime(2024, 1, 1, 14, 0))

    def _conflicts(self, hour: int, minute: int) -> bool:
        return find_conflicting_match(P, Q, datetime(2024, 1, 1, hour, minute), [self.EXISTING], self.NOW) is not None

    def test_ten_minutes_after_conflicts(self):
        assert self._conflicts(14, 10)

    def test_one_hour_after_is_free(self):
        assert not self._conflicts(15, 0)

    def test_lead_buffer_boundary(self):
        # [14:29, 15:14) still touches [14:00, 14:30)
        assert self._conflicts(14, 44)
        assert not self._conflicts(14, 45)

    def test_slot_before_existing(self):
        assert self._conflicts(13, 31)
        assert not self._conflicts(13, 30)


class TestConcludedMatchConflicts:
    NOW = datetime(2024, 1, 1, 12, 0)

    def test_after_recorded_end_is_free(self):
        existing = _match(datetime(2024, 1, 1, 8, 0), datetime(2024, 1, 1, 9, 0))
        assert find_conflicting_match(P, Q, datetime(2024, 1, 1, 9, 5), [existing], self.NOW) is None

    def test_inside_recorded_window_conflicts(self):
        existing = _match(datetime(2024, 1, 1, 8, 0), datetime(2024, 1, 1, 9, 0))
        assert find_conflicting_match(P, Q, datetime(2024, 1, 1, 8, 59), [existing], self.NOW) is not None

    def test_slot_ending_exactly_at_start_is_free(self):
        existing = _match(datetime(2024, 1, 1, 8, 0), datetime(2024, 1, 1, 9, 0))
        assert find_conflicting_match(P, Q, datetime(2024, 1, 1, 7, 30), [existing], self.NOW) is None

    def test_open_past_match_boundary(self):
        existing = _match(datetime(2024, 1, 1, 10, 0))
        assert find_conflicting_match(P, Q, datetime(2024, 1, 1, 10, 44), [existing], self.NOW) is not None
        assert find_conflicting_match(P, Q, datetime(2024, 1, 1, 10, 45), [existing], self.NOW) is None


class TestFindConflictingMatch:
    NOW = datetime(2024, 1, 1, 12, 0)

    def test_second_player_conflict_detected(self):
        existing = _match(datetime(2024, 1, 1, 14, 0), p1=OTHER, p2=Q)
        found = find_conflicting_match(P, Q, datetime(2024, 1, 1, 14, 0), [existing], self.NOW)
        assert found is existing

    def test_excluded_match_never_conflicts_with_itself(self):
        existing = _match(datetime(2024, 1, 1, 14, 0))
        proposed = datetime(2024, 1, 1, 14, 10)
        assert find_conflicting_match(P, Q, proposed, [existing], self.NOW, existing.id) is None
        assert find_conflicting_match(P, Q, proposed, [existing], self.NOW) is existing

    def test_unrelated_matches_ignored(self):
        stranger = uuid.uuid4()
        existing = _match(datetime(2024, 1, 1, 14, 0), p1=stranger, p2=OTHER)
        assert find_conflicting_match(P, Q, datetime(2024, 1, 1, 14, 0), [existing], self.NOW) is None

    def test_no_matches_no_conflict(self):
        assert find_conflicting_match(P, Q, datetime(2024, 1, 1, 14, 0), [], self.NOW) is None

    def test_split_by_player_assigns_shared_match_to_player1(self):
        shared = _match(datetime(2024, 1, 1, 14, 0), p1=P, p2=Q)
        only_q = _match(datetime(2024, 1, 1, 16, 0), p1=OTHER, p2=Q)
        p_matches, q_matches = split_by_player(P, Q, [shared, only_q])
        assert p_matches == [shared]
        assert q_matches == [only_q]
