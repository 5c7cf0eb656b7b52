"""Tests for conflict detection and resolution hints"""

import pytz

from meetsync.agent.availability import AvailabilityScorer
from meetsync.agent.conflict_detector import ConflictDetector
from meetsync.agent.models import CandidateSlot, Participant, ParticipantRole

from conftest import MONDAY, at, make_schedule


def test_no_conflicts_gives_empty_report():
    detector = ConflictDetector()
    slot = CandidateSlot.starting_at(at(MONDAY, 10), 60)
    schedules = [
        make_schedule(1, "Alice", [(at(MONDAY, 9), at(MONDAY, 10), "Standup")]),
        make_schedule(2, "Bob"),
    ]

    report = detector.detect(slot, schedules)

    assert report.conflicting_participants == []
    assert report.resolution_hint == ""
    assert not report.has_conflicts


def test_required_conflict_recommends_rescheduling():
    detector = ConflictDetector()
    slot = CandidateSlot.starting_at(at(MONDAY, 14), 60)
    schedules = [
        make_schedule(1, "Alice", [(at(MONDAY, 14, 30), at(MONDAY, 15, 30), "Project Review")]),
        make_schedule(2, "Bob", [(at(MONDAY, 13), at(MONDAY, 16), "Offsite")], role=ParticipantRole.OPTIONAL),
    ]

    report = detector.detect(slot, schedules)

    assert [entry.participant.name for entry in report.conflicting_participants] == ["Alice", "Bob"]
    assert "Project Review" in report.conflicting_participants[0].reason
    assert report.resolution_hint.startswith("Rescheduling is recommended")
    assert "Alice" in report.resolution_hint
    assert [entry.participant.name for entry in report.required_conflicts] == ["Alice"]


def test_optional_only_conflicts_let_organizer_proceed():
    detector = ConflictDetector()
    slot = CandidateSlot.starting_at(at(MONDAY, 14), 60)
    schedules = [
        make_schedule(1, "Alice"),
        make_schedule(2, "Bob", [(at(MONDAY, 14), at(MONDAY, 15), "Team Sync")], role=ParticipantRole.OPTIONAL),
    ]

    report = detector.detect(slot, schedules)

    assert len(report.conflicting_participants) == 1
    assert "organizer may proceed" in report.resolution_hint
    assert "alternative" in report.resolution_hint
    assert not report.required_conflicts


def test_one_entry_per_participant_using_earliest_overlap():
    detector = ConflictDetector()
    slot = CandidateSlot.starting_at(at(MONDAY, 10), 120)
    schedules = [make_schedule(1, "Alice", [
        (at(MONDAY, 11), at(MONDAY, 12), "Lunch and Learn"),
        (at(MONDAY, 9, 30), at(MONDAY, 10, 30), "Mentoring"),
    ])]

    report = detector.detect(slot, schedules)

    assert len(report.conflicting_participants) == 1
    entry = report.conflicting_participants[0]
    assert entry.conflicting_interval.title == "Mentoring"
    assert entry.reason.startswith('Alice has "Mentoring" from 09:30 to 10:30 on 2025-03-10')
    assert "1 other commitment" in entry.reason


def test_participant_metadata_overrides_required_flag():
    detector = ConflictDetector()
    slot = CandidateSlot.starting_at(at(MONDAY, 10), 60)
    schedules = [make_schedule(1, "Alice", [(at(MONDAY, 10), at(MONDAY, 11), "Review")])]
    meta = [Participant(user_id=1, name="Alice", role=ParticipantRole.OPTIONAL)]

    report = detector.detect(slot, schedules, meta)

    assert report.conflicting_participants[0].participant.required_attendance is False
    assert "organizer may proceed" in report.resolution_hint


def test_existing_meeting_times_are_accepted():
    detector = ConflictDetector()
    slot = CandidateSlot.from_meeting(at(MONDAY, 15), at(MONDAY, 15, 45))
    schedules = [make_schedule(1, "Alice", [(at(MONDAY, 15, 30), at(MONDAY, 16), "Coaching")])]

    report = detector.detect(slot, schedules)

    assert report.has_conflicts


def test_times_rendered_in_reference_timezone():
    detector = ConflictDetector(tz=pytz.timezone("America/New_York"))
    slot = CandidateSlot.starting_at(at(MONDAY, 14), 60)
    schedules = [make_schedule(1, "Alice", [(at(MONDAY, 14), at(MONDAY, 15), "Project Review")])]

    report = detector.detect(slot, schedules)

    # 14:00 UTC is 10:00 in New York after the March DST change
    assert "from 10:00 to 11:00" in report.conflicting_participants[0].reason


def test_conflicting_participants_are_never_free():
    detector = ConflictDetector()
    scorer = AvailabilityScorer()
    slot = CandidateSlot.starting_at(at(MONDAY, 11), 60)
    schedules = [
        make_schedule(1, "Alice", [(at(MONDAY, 10, 30), at(MONDAY, 11, 15), "Overrun")]),
        make_schedule(2, "Bob", [(at(MONDAY, 12), at(MONDAY, 13), "Lunch")]),
        make_schedule(3, "Carol", [(at(MONDAY, 11, 59), at(MONDAY, 12, 30), "Call")], role=ParticipantRole.OPTIONAL),
    ]

    report = detector.detect(slot, schedules)
    score = scorer.score(slot, schedules)
    free_by_id = {entry.participant.user_id: entry.free for entry in score.per_participant}

    conflicting_ids = {entry.participant.user_id for entry in report.conflicting_participants}
    assert conflicting_ids == {1, 3}
    for user_id in conflicting_ids:
        assert free_by_id[user_id] is False
    assert free_by_id[2] is True
