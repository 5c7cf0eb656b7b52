"""Shared fixtures and builders for the scheduling tests"""

from datetime import datetime, date
from typing import List, Optional, Tuple

import pytest
import pytz

from meetsync.agent.models import (
    BusyInterval, IntervalSource, Participant, ParticipantRole, ParticipantSchedule
)
from meetsync.services.calendar_store import InMemoryCalendarStore
from meetsync.utils.config import SchedulingConfig

# Friday; the next business day is Monday 2025-03-10
REFERENCE_DATE = date(2025, 3, 7)
MONDAY = date(2025, 3, 10)
TUESDAY = date(2025, 3, 11)

def at(day: date, hour: int, minute: int = 0) -> datetime:
    return pytz.UTC.localize(datetime(day.year, day.month, day.day, hour, minute))

def iso(day: date, hour: int, minute: int = 0) -> str:
    return at(day, hour, minute).isoformat().replace("+00:00", "Z")

def make_schedule(
    user_id: int,
    name: str,
    busy: Optional[List[Tuple[datetime, datetime, str]]] = None,
    role: ParticipantRole = ParticipantRole.ATTENDEE,
    required: Optional[bool] = None
) -> ParticipantSchedule:
    return ParticipantSchedule(
        participant=Participant(user_id=user_id, name=name, role=role, required_attendance=required),
        busy=[
            BusyInterval(start=start, end=end, title=title, source=IntervalSource.EVENT)
            for start, end, title in busy or []
        ]
    )

def build_settings(**overrides) -> SchedulingConfig:
    values = dict(
        timezone="UTC",
        workday_start_hour=9,
        workday_end_hour=17,
        slot_granularity_minutes=60,
        horizon_days=10,
        max_alternatives=3,
        default_meeting_hour=10,
        default_duration_minutes=60,
        fetch_timeout_seconds=0.5,
        request_timeout_seconds=5.0
    )
    values.update(overrides)
    return SchedulingConfig(**values)

@pytest.fixture
def settings() -> SchedulingConfig:
    return build_settings()

@pytest.fixture
def store() -> InMemoryCalendarStore:
    """Three users; Bob has a Monday meeting and Carol a Monday workshop"""
    memory = InMemoryCalendarStore()
    memory.add_user(1, "Alice")
    memory.add_user(2, "Bob")
    memory.add_user(3, "Carol")

    memory.add_meeting({
        "id": 100,
        "title": "Quarterly Planning",
        "startTime": iso(MONDAY, 9),
        "endTime": iso(MONDAY, 10),
        "eventId": 500,
        "participants": [
            {"userId": 1, "role": "Organizer", "requiredAttendance": True, "status": "Confirmed"},
            {"userId": 2, "role": "Attendee", "requiredAttendance": True, "status": "Confirmed"},
            {"userId": 3, "role": "Optional", "requiredAttendance": False, "status": "Pending"},
        ]
    })
    memory.add_meeting({
        "id": 101,
        "title": "Project Review",
        "startTime": iso(MONDAY, 14),
        "endTime": iso(MONDAY, 15),
        "participants": [{"userId": 2, "role": "Presenter", "status": "Confirmed"}]
    })
    # Calendar event row linked to meeting 100
    memory.add_event(1, {
        "id": 500,
        "title": "Quarterly Planning",
        "startTime": iso(MONDAY, 9),
        "endTime": iso(MONDAY, 10)
    })
    memory.add_event(3, {
        "id": 501,
        "title": "Leadership Workshop",
        "startTime": iso(MONDAY, 13),
        "endTime": iso(MONDAY, 16)
    })
    return memory
