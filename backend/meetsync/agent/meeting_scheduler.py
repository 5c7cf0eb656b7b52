"""
Meeting Scheduler - Request Orchestrator

Entry point used by the HTTP layer. It validates scheduling requests, wires the
calendar aggregator, slot search engine and conflict detector together, applies
the degraded-mode fallbacks (no participants, no calendar information at all)
and finally lets the optional explanation writer phrase the human-readable
strings. Every request is an independent computation; nothing is cached
between requests.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Any, Union
from datetime import datetime, date
from dataclasses import dataclass, field

from ..utils.config import SchedulingConfig
from ..utils.helpers import parse_iso_date, parse_iso_datetime
from ..services.calendar_store import CalendarStore
from ..services.text_generation import ExplanationWriter
from .calendar_aggregator import CalendarAggregator
from .conflict_detector import ConflictDetector
from .models import (
    AttendancePolicy, CandidateSlot, ConflictReport, ParticipantRole,
    StoredMeeting, SuggestionResult
)
from .scheduling_intelligence import SchedulingIntelligence

logger = logging.getLogger(__name__)

NO_CALENDAR_REASON = "No calendar information available; defaulting to the next business day at {hour:02d}:00."

# One working week
MAX_DURATION_MINUTES = 7 * 24 * 60

class SchedulingValidationError(ValueError):
    """Malformed scheduling request; reported to the caller as a client error"""

class MeetingNotFoundError(LookupError):
    """The calendar store has no meeting with the requested id"""

class SchedulingTimeoutError(Exception):
    """The whole scheduling request exceeded its time budget"""

class InvalidMeetingRecordError(Exception):
    """The calendar store returned a meeting record that cannot be interpreted"""

@dataclass
class ParticipantRoleInput:
    """Role assignment as received from the caller"""
    user_id: int
    role: Optional[str] = None
    required_attendance: Optional[bool] = None

@dataclass
class SuggestTimeRequest:
    """Parameters of a meeting-time suggestion request"""
    participant_ids: List[int]
    participant_roles: List[ParticipantRoleInput] = field(default_factory=list)
    duration_minutes: Optional[int] = None
    preferred_dates: List[Union[str, date]] = field(default_factory=list)
    meeting_purpose: Optional[str] = None
    reference_date: Optional[date] = None

@dataclass
class MeetingConflictCheck:
    """Outcome of re-checking a stored meeting at its current or new time"""
    meeting: StoredMeeting
    slot: CandidateSlot
    report: ConflictReport
    total_participants: int
    warnings: List[str] = field(default_factory=list)

class MeetingScheduler:
    """
    Meeting-time negotiation and conflict resolution orchestrator

    All collaborators are passed in at construction time so tests can swap
    the calendar store and the explanation writer.
    """

    def __init__(
        self,
        store: CalendarStore,
        scheduling: SchedulingConfig,
        writer: Optional[ExplanationWriter] = None,
        engine: Optional[SchedulingIntelligence] = None
    ):
        """Initialize the scheduler with its collaborators"""
        self.store = store
        self.settings = scheduling
        self.tz = scheduling.tzinfo
        self.writer = writer
        self.engine = engine or SchedulingIntelligence(scheduling)
        self.detector = self.engine.detector
        self.aggregator = CalendarAggregator(store, self.tz, scheduling.fetch_timeout_seconds)

        logger.info("Meeting scheduler initialized")

    # =========================================================================
    # Suggestion
    # =========================================================================

    async def suggest_meeting_time(self, request: SuggestTimeRequest) -> SuggestionResult:
        """
        Suggest a meeting time for the requested participants

        Raises:
            SchedulingValidationError: malformed request
            SchedulingTimeoutError: request exceeded request_timeout_seconds
        """
        policies = self.validate_suggest_request(request)
        purpose = request.meeting_purpose or "general discussion"
        try:
            result = await asyncio.wait_for(
                self._suggest(request, policies, purpose),
                timeout=self.settings.request_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Suggestion request timed out after {self.settings.request_timeout_seconds:g}s")
            raise SchedulingTimeoutError("Scheduling request timed out") from e

        await self._phrase_suggestion(result, purpose)
        return result

    def validate_suggest_request(self, request: SuggestTimeRequest) -> Dict[int, AttendancePolicy]:
        """Check the request and resolve attendance policies per participant"""
        errors = []
        ids = request.participant_ids

        if any(not isinstance(user_id, int) or isinstance(user_id, bool) or user_id <= 0 for user_id in ids):
            errors.append("participantIds must be positive integers")
        if len(set(ids)) != len(ids):
            errors.append("participantIds must not contain duplicates")

        duration = request.duration_minutes
        if duration is not None and duration <= 0:
            errors.append("durationMinutes must be positive")
        elif duration is not None and duration > MAX_DURATION_MINUTES:
            errors.append(f"durationMinutes must not exceed {MAX_DURATION_MINUTES}")

        for value in request.preferred_dates:
            try:
                parse_iso_date(value)
            except ValueError:
                errors.append(f"preferredDates entry {value!r} is not an ISO date")

        policies: Dict[int, AttendancePolicy] = {}
        for entry in request.participant_roles:
            if entry.user_id not in ids:
                errors.append(f"participantRoles references user {entry.user_id} who is not a participant")
                continue
            if entry.user_id in policies:
                errors.append(f"participantRoles lists user {entry.user_id} more than once")
                continue
            try:
                role = ParticipantRole.parse(entry.role) if entry.role else ParticipantRole.ATTENDEE
            except ValueError as e:
                errors.append(str(e))
                continue
            policies[entry.user_id] = AttendancePolicy(role=role, required_attendance=entry.required_attendance)

        if errors:
            logger.warning(f"Rejected suggestion request: {'; '.join(errors)}")
            raise SchedulingValidationError("; ".join(errors))
        return policies

    async def _suggest(
        self,
        request: SuggestTimeRequest,
        policies: Dict[int, AttendancePolicy],
        purpose: str
    ) -> SuggestionResult:
        duration = request.duration_minutes or self.settings.default_duration_minutes

        aggregation = await self.aggregator.aggregate(request.participant_ids, policies)

        if aggregation.all_failed:
            total = len(aggregation.schedules)
            result = self.engine.default_suggestion(
                total_count=total,
                available_count=total,
                reason=NO_CALENDAR_REASON.format(hour=self.settings.default_meeting_hour),
                reference_date=request.reference_date,
                duration_minutes=duration,
                warnings=aggregation.warnings
            )
        else:
            result = self.engine.suggest(
                aggregation.schedules,
                duration,
                request.preferred_dates,
                purpose,
                reference_date=request.reference_date
            )
            result.warnings = aggregation.warnings + result.warnings
        return result

    async def _phrase_suggestion(self, result: SuggestionResult, purpose: str) -> None:
        if self.writer is None or not self.writer.enabled:
            return

        facts = {
            "meetingPurpose": purpose,
            "start": result.primary.start.isoformat(),
            "end": result.primary.end.isoformat(),
            "availableParticipants": result.available_count,
            "totalParticipants": result.total_count,
            "conflicts": [entry.reason for entry in result.conflicts.conflicting_participants]
        }
        hint = result.conflicts.resolution_hint
        if hint:
            result.reason, result.conflicts.resolution_hint = await asyncio.gather(
                self._phrase(result.reason, facts),
                self._phrase(hint, facts)
            )
        else:
            result.reason = await self._phrase(result.reason, facts)

    async def _phrase(self, template: str, facts: Dict[str, Any]) -> str:
        """Writer output bounded by its own timeout; the template on expiry"""
        limit = self.writer.settings.timeout_seconds
        try:
            return await asyncio.wait_for(self.writer.phrase(template, facts), timeout=limit)
        except asyncio.TimeoutError:
            logger.warning(f"Explanation phrasing exceeded {limit:g}s; keeping template")
            return template

    # =========================================================================
    # Conflict detection for existing meetings
    # =========================================================================

    async def detect_meeting_conflicts(
        self,
        meeting_id: int,
        new_start: Optional[Union[str, datetime]] = None,
        new_end: Optional[Union[str, datetime]] = None
    ) -> MeetingConflictCheck:
        """
        Re-check an existing meeting, optionally at a new time

        Only the start given: the meeting keeps its duration. Only the end
        given: the meeting keeps its start. Participants who declined are not
        checked, and the meeting's own calendar entries never count as a
        conflict.

        Raises:
            MeetingNotFoundError: unknown meeting id
            InvalidMeetingRecordError: stored meeting record is malformed
            SchedulingValidationError: unparseable or inverted times
            SchedulingTimeoutError: request exceeded request_timeout_seconds
        """
        try:
            check = await asyncio.wait_for(
                self._detect(meeting_id, new_start, new_end),
                timeout=self.settings.request_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Conflict check for meeting {meeting_id} timed out")
            raise SchedulingTimeoutError("Conflict detection timed out") from e

        if check.report.resolution_hint and self.writer is not None and self.writer.enabled:
            check.report.resolution_hint = await self._phrase(check.report.resolution_hint, {
                "meetingTitle": check.meeting.title,
                "start": check.slot.start.isoformat(),
                "end": check.slot.end.isoformat(),
                "conflicts": [entry.reason for entry in check.report.conflicting_participants]
            })
        return check

    async def _detect(
        self,
        meeting_id: int,
        new_start: Optional[Union[str, datetime]],
        new_end: Optional[Union[str, datetime]]
    ) -> MeetingConflictCheck:
        meeting = await self.load_meeting(meeting_id)
        slot = self.resolve_slot(meeting, new_start, new_end)

        attending = meeting.attending
        policies = {
            p.user_id: AttendancePolicy(role=p.role, required_attendance=p.required_attendance)
            for p in attending
        }
        aggregation = await self.aggregator.aggregate(
            [p.user_id for p in attending],
            policies,
            exclude_meeting=meeting
        )

        report = self.detector.detect(slot, aggregation.schedules)

        logger.info(
            f"Meeting {meeting_id} at {slot.start.isoformat()}: "
            f"{len(report.conflicting_participants)}/{len(attending)} participants conflicting"
        )
        return MeetingConflictCheck(
            meeting=meeting,
            slot=slot,
            report=report,
            total_participants=len(attending),
            warnings=aggregation.warnings
        )

    async def load_meeting(self, meeting_id: int) -> StoredMeeting:
        record = await self.store.get_meeting_by_id(meeting_id)
        if record is None:
            raise MeetingNotFoundError(f"Meeting {meeting_id} not found")
        try:
            return StoredMeeting.from_record(record, self.tz)
        except ValueError as e:
            logger.error(f"Meeting {meeting_id} has an invalid record: {str(e)}")
            raise InvalidMeetingRecordError(f"Meeting {meeting_id} has an invalid record: {str(e)}") from e

    def resolve_slot(
        self,
        meeting: StoredMeeting,
        new_start: Optional[Union[str, datetime]],
        new_end: Optional[Union[str, datetime]]
    ) -> CandidateSlot:
        """Apply requested start/end changes to a stored meeting"""
        try:
            start = parse_iso_datetime(new_start, self.tz) if new_start else None
            end = parse_iso_datetime(new_end, self.tz) if new_end else None
        except ValueError as e:
            raise SchedulingValidationError(str(e)) from e

        if start is not None and end is None:
            end = start + (meeting.end - meeting.start)
        start = start or meeting.start
        end = end or meeting.end

        try:
            return CandidateSlot.from_meeting(start, end)
        except ValueError as e:
            raise SchedulingValidationError(str(e)) from e

__all__ = [
    'MeetingScheduler',
    'SuggestTimeRequest',
    'ParticipantRoleInput',
    'MeetingConflictCheck',
    'SchedulingValidationError',
    'MeetingNotFoundError',
    'SchedulingTimeoutError',
    'InvalidMeetingRecordError',
    'NO_CALENDAR_REASON',
    'MAX_DURATION_MINUTES'
]
