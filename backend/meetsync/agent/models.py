"""
Scheduling Domain Model

Typed participants, busy intervals and the transient artifacts exchanged by the
calendar aggregator, availability scorer, slot search engine and conflict
detector. Raw collaborator records are validated here, at the aggregation
boundary, so the scheduling components only ever see well-formed intervals.
"""

import logging
import re
from typing import Dict, List, Optional, Any
from datetime import datetime, timedelta
from dataclasses import dataclass, field
from enum import Enum

from ..utils.helpers import parse_iso_datetime, times_overlap

logger = logging.getLogger(__name__)

class ParticipantRole(Enum):
    """Roles a meeting participant can hold"""
    ORGANIZER = "Organizer"
    ATTENDEE = "Attendee"
    PRESENTER = "Presenter"
    STAKEHOLDER = "Stakeholder"
    OBSERVER = "Observer"
    SUBJECT_MATTER_EXPERT = "Subject Matter Expert"
    TRAINEE = "Trainee"
    TRAINER = "Trainer"
    OPTIONAL = "Optional"

    @classmethod
    def parse(cls, value: Any) -> 'ParticipantRole':
        """Case-insensitive lookup accepting '-', '_' or spaces as separators"""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unknown participant role: {value!r}")
        normalized = re.sub(r'[\s_-]+', ' ', value).strip().lower()
        for role in cls:
            if role.value.lower() == normalized:
                return role
        raise ValueError(f"Unknown participant role: {value!r}")

class IntervalSource(Enum):
    """Collaborator feed a busy interval came from"""
    EVENT = "event"
    MEETING = "meeting"

class ParticipationStatus(Enum):
    """Invitation response of a stored meeting participant"""
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    DECLINED = "Declined"

    @classmethod
    def parse(cls, value: Any) -> 'ParticipationStatus':
        """Case-insensitive lookup; a missing status counts as pending"""
        if isinstance(value, cls):
            return value
        if value is None or value == '':
            return cls.PENDING
        if isinstance(value, str):
            for status in cls:
                if status.value.lower() == value.strip().lower():
                    return status
        raise ValueError(f"Unknown participation status: {value!r}")

@dataclass(frozen=True)
class Participant:
    """A person whose calendar takes part in a scheduling request"""
    user_id: int
    name: str
    role: ParticipantRole = ParticipantRole.ATTENDEE
    required_attendance: Optional[bool] = None

    def __post_init__(self):
        # Non-optional roles are required unless told otherwise
        if self.required_attendance is None:
            object.__setattr__(self, 'required_attendance', self.role != ParticipantRole.OPTIONAL)

@dataclass(frozen=True)
class AttendancePolicy:
    """Caller-supplied role and attendance requirement for one participant"""
    role: ParticipantRole = ParticipantRole.ATTENDEE
    required_attendance: Optional[bool] = None

    def apply(self, user_id: int, name: str) -> Participant:
        return Participant(
            user_id=user_id,
            name=name,
            role=self.role,
            required_attendance=self.required_attendance
        )

@dataclass(frozen=True)
class BusyInterval:
    """Half-open interval [start, end) during which a participant is committed"""
    start: datetime
    end: datetime
    title: str
    source: IntervalSource = IntervalSource.EVENT
    source_id: Optional[int] = None

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Busy interval '{self.title}' ends before it starts")

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return times_overlap(self.start, self.end, start, end)

    @classmethod
    def from_record(cls, record: Dict[str, Any], source: IntervalSource, tz) -> 'BusyInterval':
        """
        Build an interval from a raw event or meeting record

        Accepts camelCase (startTime/endTime) or snake_case keys. Raises
        ValueError when timestamps are missing, unparseable or inverted.
        """
        if not isinstance(record, dict):
            raise ValueError(f"Expected a mapping, got {type(record).__name__}")

        raw_start = record.get('startTime', record.get('start_time', record.get('start')))
        raw_end = record.get('endTime', record.get('end_time', record.get('end')))
        if raw_start is None or raw_end is None:
            raise ValueError(f"Record {record.get('id')!r} is missing start or end time")

        title = record.get('title') or record.get('summary')
        if not title:
            title = "Untitled meeting" if source == IntervalSource.MEETING else "Untitled event"

        source_id = record.get('id')
        return cls(
            start=parse_iso_datetime(raw_start, tz),
            end=parse_iso_datetime(raw_end, tz),
            title=str(title),
            source=source,
            source_id=int(source_id) if isinstance(source_id, (int, str)) and str(source_id).isdigit() else None
        )

@dataclass
class ParticipantSchedule:
    """A participant together with their busy intervals for one request"""
    participant: Participant
    busy: List[BusyInterval] = field(default_factory=list)

    def overlapping(self, start: datetime, end: datetime) -> List[BusyInterval]:
        """Busy intervals overlapping [start, end), earliest first"""
        hits = [interval for interval in self.busy if interval.overlaps(start, end)]
        hits.sort(key=lambda interval: (interval.start, interval.end))
        return hits

    def is_free(self, start: datetime, end: datetime) -> bool:
        return not any(interval.overlaps(start, end) for interval in self.busy)

@dataclass(frozen=True)
class CandidateSlot:
    """Proposed meeting start/end time"""
    start: datetime
    end: datetime

    @classmethod
    def starting_at(cls, start: datetime, duration_minutes: int) -> 'CandidateSlot':
        return cls(start=start, end=start + timedelta(minutes=duration_minutes))

    @classmethod
    def from_meeting(cls, start: datetime, end: datetime) -> 'CandidateSlot':
        """Slot for an already-scheduled meeting's stored start/end"""
        if end <= start:
            raise ValueError("Meeting end time must be after its start time")
        return cls(start=start, end=end)

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() / 60)

@dataclass
class ParticipantAvailability:
    """Whether one participant is free for a slot"""
    participant: Participant
    free: bool

@dataclass
class AvailabilityScore:
    """Availability of every participant for one slot"""
    slot: CandidateSlot
    per_participant: List[ParticipantAvailability]
    available_count: int
    required_available_count: int
    required_total_count: int

    @property
    def total_count(self) -> int:
        return len(self.per_participant)

    @property
    def all_required_free(self) -> bool:
        return self.required_available_count == self.required_total_count

@dataclass
class ConflictEntry:
    """One participant's clash with a slot"""
    participant: Participant
    conflicting_interval: BusyInterval
    reason: str

@dataclass
class ConflictReport:
    """Conflicts found for a slot and what the organizer should do about them"""
    conflicting_participants: List[ConflictEntry] = field(default_factory=list)
    resolution_hint: str = ""

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicting_participants)

    @property
    def required_conflicts(self) -> List[ConflictEntry]:
        return [entry for entry in self.conflicting_participants if entry.participant.required_attendance]

@dataclass
class AlternativeSlot:
    """Runner-up slot and how many participants can make it"""
    slot: CandidateSlot
    available_count: int

@dataclass
class SuggestionResult:
    """Ranked outcome of one scheduling request"""
    primary: CandidateSlot
    reason: str
    available_count: int
    total_count: int
    alternatives: List[AlternativeSlot] = field(default_factory=list)
    conflicts: ConflictReport = field(default_factory=ConflictReport)
    warnings: List[str] = field(default_factory=list)

@dataclass
class AggregationResult:
    """Schedules assembled for a request plus any fetch problems"""
    schedules: List[ParticipantSchedule]
    warnings: List[str] = field(default_factory=list)
    failed_ids: List[int] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return bool(self.schedules) and len(self.failed_ids) == len(self.schedules)

@dataclass
class MeetingParticipantRecord:
    """Participant entry of a stored meeting"""
    user_id: int
    role: ParticipantRole = ParticipantRole.ATTENDEE
    required_attendance: Optional[bool] = None
    status: ParticipationStatus = ParticipationStatus.PENDING

@dataclass
class StoredMeeting:
    """Meeting as held by the calendar store"""
    id: int
    title: str
    start: datetime
    end: datetime
    participants: List[MeetingParticipantRecord] = field(default_factory=list)
    event_id: Optional[int] = None

    def owns(self, interval: BusyInterval) -> bool:
        """True for the meeting's own calendar entries (meeting row or linked event row)"""
        if interval.source == IntervalSource.MEETING:
            return interval.source_id == self.id
        return self.event_id is not None and interval.source_id == self.event_id

    @property
    def attending(self) -> List[MeetingParticipantRecord]:
        """Participants who have not declined"""
        return [p for p in self.participants if p.status != ParticipationStatus.DECLINED]

    @classmethod
    def from_record(cls, record: Dict[str, Any], tz) -> 'StoredMeeting':
        """Validate a raw meeting record including its participant list"""
        interval = BusyInterval.from_record(record, IntervalSource.MEETING, tz)
        if 'id' not in record:
            raise ValueError("Meeting record has no id")

        participants = []
        for entry in record.get('participants') or []:
            if isinstance(entry, int):
                participants.append(MeetingParticipantRecord(user_id=entry))
                continue
            user_id = entry.get('userId', entry.get('user_id'))
            if user_id is None:
                raise ValueError(f"Participant entry without userId in meeting {record['id']}")
            role = ParticipantRole.parse(entry.get('role') or ParticipantRole.ATTENDEE.value)
            participants.append(MeetingParticipantRecord(
                user_id=int(user_id),
                role=role,
                required_attendance=entry.get('requiredAttendance', entry.get('required_attendance')),
                status=ParticipationStatus.parse(entry.get('status'))
            ))

        event_id = record.get('eventId', record.get('event_id'))
        return cls(
            id=int(record['id']),
            title=interval.title,
            start=interval.start,
            end=interval.end,
            participants=participants,
            event_id=int(event_id) if event_id is not None else None
        )

# Export main classes
__all__ = [
    'ParticipantRole',
    'IntervalSource',
    'ParticipationStatus',
    'Participant',
    'AttendancePolicy',
    'BusyInterval',
    'ParticipantSchedule',
    'CandidateSlot',
    'ParticipantAvailability',
    'AvailabilityScore',
    'ConflictEntry',
    'ConflictReport',
    'AlternativeSlot',
    'SuggestionResult',
    'AggregationResult',
    'MeetingParticipantRecord',
    'StoredMeeting'
]
