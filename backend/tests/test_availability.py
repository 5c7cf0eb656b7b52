"""Tests for interval overlap and the availability scorer"""

from datetime import timedelta

import pytest

from meetsync.agent.availability import AvailabilityScorer
from meetsync.agent.models import BusyInterval, CandidateSlot, ParticipantRole
from meetsync.utils.helpers import times_overlap

from conftest import MONDAY, at, make_schedule


class TestOverlap:
    def test_adjacent_intervals_do_not_overlap(self):
        assert not times_overlap(at(MONDAY, 9), at(MONDAY, 10), at(MONDAY, 10), at(MONDAY, 11))
        assert not times_overlap(at(MONDAY, 10), at(MONDAY, 11), at(MONDAY, 9), at(MONDAY, 10))

    @pytest.mark.parametrize("start,end,expected", [
        ((9, 0), (10, 0), False),
        ((9, 30), (10, 30), True),
        ((10, 15), (10, 45), True),
        ((10, 0), (11, 0), True),
        ((10, 59), (12, 0), True),
        ((11, 0), (12, 0), False),
    ])
    def test_half_open_rule(self, start, end, expected):
        a, b = at(MONDAY, 10), at(MONDAY, 11)
        c, d = at(MONDAY, *start), at(MONDAY, *end)
        assert times_overlap(a, b, c, d) == expected
        assert times_overlap(a, b, c, d) == (a < d and c < b)

    def test_busy_interval_rejects_inverted_range(self):
        with pytest.raises(ValueError):
            BusyInterval(start=at(MONDAY, 11), end=at(MONDAY, 10), title="Backwards")


class TestAvailabilityScorer:
    def setup_method(self):
        self.scorer = AvailabilityScorer()
        self.slot = CandidateSlot.starting_at(at(MONDAY, 10), 60)

    def test_counts_free_and_required_participants(self):
        schedules = [
            make_schedule(1, "Alice"),
            make_schedule(2, "Bob", [(at(MONDAY, 10, 30), at(MONDAY, 11, 30), "Standup")]),
            make_schedule(3, "Carol", role=ParticipantRole.OPTIONAL),
            make_schedule(4, "Dan", [(at(MONDAY, 9), at(MONDAY, 12), "Workshop")], role=ParticipantRole.OPTIONAL),
        ]

        score = self.scorer.score(self.slot, schedules)

        assert [entry.free for entry in score.per_participant] == [True, False, True, False]
        assert score.available_count == 2
        assert score.total_count == 4
        assert score.required_available_count == 1
        assert score.required_total_count == 2
        assert not score.all_required_free

    def test_adjacent_commitments_leave_participant_free(self):
        schedules = [make_schedule(1, "Alice", [
            (at(MONDAY, 9), at(MONDAY, 10), "Before"),
            (at(MONDAY, 11), at(MONDAY, 12), "After"),
        ])]

        score = self.scorer.score(self.slot, schedules)

        assert score.available_count == 1
        assert score.all_required_free

    def test_overlapping_busy_intervals_are_treated_as_union(self):
        schedules = [make_schedule(1, "Alice", [
            (at(MONDAY, 9), at(MONDAY, 10, 30), "Session A"),
            (at(MONDAY, 10), at(MONDAY, 10, 15), "Session B"),
        ])]

        assert self.scorer.score(self.slot, schedules).available_count == 0
        later = CandidateSlot.starting_at(at(MONDAY, 10, 30), 30)
        assert self.scorer.score(later, schedules).available_count == 1

    def test_available_count_never_exceeds_total(self):
        schedules = [make_schedule(i, f"User {i}") for i in range(1, 6)]
        score = self.scorer.score(self.slot, schedules)
        assert score.available_count <= score.total_count

    def test_explicit_required_flag_overrides_role_default(self):
        schedules = [
            make_schedule(1, "Alice", role=ParticipantRole.OPTIONAL, required=True),
            make_schedule(2, "Bob", role=ParticipantRole.TRAINER, required=False),
        ]
        score = self.scorer.score(self.slot, schedules)
        assert score.required_total_count == 1
        assert score.per_participant[0].participant.required_attendance is True

    def test_ranking_key_prefers_required_then_total_then_earliest(self):
        early = self.scorer.score(self.slot, [make_schedule(1, "Alice")])
        late_slot = CandidateSlot(start=self.slot.start + timedelta(hours=1), end=self.slot.end + timedelta(hours=1))
        late = self.scorer.score(late_slot, [make_schedule(1, "Alice")])

        assert sorted([late, early], key=AvailabilityScorer.ranking_key)[0] is early
