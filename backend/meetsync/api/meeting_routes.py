"""
Meeting Routes - Scheduling Endpoints

REST access to the meeting-time suggestion engine and to conflict detection
for existing meetings. Request and response bodies use the camelCase field
names of the LMS front end.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from ..agent.meeting_scheduler import (
    InvalidMeetingRecordError, MeetingConflictCheck, MeetingNotFoundError, MeetingScheduler,
    ParticipantRoleInput, SchedulingTimeoutError, SchedulingValidationError, SuggestTimeRequest
)
from ..agent.models import CandidateSlot, ConflictEntry, SuggestionResult

logger = logging.getLogger(__name__)

meeting_router = APIRouter()

# Request/Response models
class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

class ParticipantRolePayload(CamelModel):
    """Role assignment for one participant"""
    user_id: int = Field(..., alias="userId")
    role: Optional[str] = Field(None, description="Organizer, Attendee, Presenter, ... or Optional")
    required_attendance: Optional[bool] = Field(None, alias="requiredAttendance")

class SuggestTimePayload(CamelModel):
    """Meeting-time suggestion request"""
    participant_ids: List[int] = Field(..., alias="participantIds")
    participant_roles: List[ParticipantRolePayload] = Field(default_factory=list, alias="participantRoles")
    duration_minutes: Optional[int] = Field(None, alias="durationMinutes", description="Defaults to 60")
    preferred_dates: List[str] = Field(default_factory=list, alias="preferredDates", description="ISO dates")
    meeting_purpose: Optional[str] = Field(None, alias="meetingPurpose")

class AlternativeTimePayload(CamelModel):
    date: str
    time: str
    available_participants: int = Field(..., alias="availableParticipants")

class ConflictingParticipantPayload(CamelModel):
    user_id: int = Field(..., alias="userId")
    name: str
    conflict_reason: str = Field(..., alias="conflictReason")

class ConflictDetailsPayload(CamelModel):
    conflicting_participants: List[ConflictingParticipantPayload] = Field(..., alias="conflictingParticipants")
    conflict_resolution_suggestion: str = Field(..., alias="conflictResolutionSuggestion")

class SuggestTimeResponse(CamelModel):
    """Suggested meeting time"""
    suggested_date: str = Field(..., alias="suggestedDate")
    suggested_time: str = Field(..., alias="suggestedTime")
    reason: str
    available_participants: int = Field(..., alias="availableParticipants")
    total_participants: int = Field(..., alias="totalParticipants")
    alternative_times: List[AlternativeTimePayload] = Field(..., alias="alternativeTimes")
    conflict_details: ConflictDetailsPayload = Field(..., alias="conflictDetails")
    warnings: List[str] = Field(default_factory=list)

class DetectConflictsPayload(CamelModel):
    """Conflict check for an existing meeting"""
    meeting_id: int = Field(..., alias="meetingId")
    new_start_time: Optional[str] = Field(None, alias="newStartTime")
    new_end_time: Optional[str] = Field(None, alias="newEndTime")

class ConflictingEventPayload(CamelModel):
    title: str
    start_time: datetime = Field(..., alias="startTime")
    end_time: datetime = Field(..., alias="endTime")

class MeetingConflictPayload(CamelModel):
    user_id: int = Field(..., alias="userId")
    name: str
    role: str
    required_attendance: bool = Field(..., alias="requiredAttendance")
    conflict_reason: str = Field(..., alias="conflictReason")
    conflicting_event: ConflictingEventPayload = Field(..., alias="conflictingEvent")

class DetectConflictsResponse(CamelModel):
    """Conflicts of an existing meeting at its current or new time"""
    has_conflicts: bool = Field(..., alias="hasConflicts")
    conflicting_participants: List[MeetingConflictPayload] = Field(..., alias="conflictingParticipants")
    resolution_suggestion: str = Field(..., alias="resolutionSuggestion")
    total_participants: int = Field(..., alias="totalParticipants")
    conflicting_participants_count: int = Field(..., alias="conflictingParticipantsCount")
    warnings: List[str] = Field(default_factory=list)

def get_scheduler(request: Request) -> MeetingScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Meeting scheduler not initialized")
    return scheduler

def _date_and_time(slot: CandidateSlot, tz):
    local = slot.start.astimezone(tz)
    return local.date().isoformat(), local.strftime("%H:%M")

def _suggestion_response(result: SuggestionResult, tz) -> SuggestTimeResponse:
    suggested_date, suggested_time = _date_and_time(result.primary, tz)
    alternatives = []
    for alternative in result.alternatives:
        alt_date, alt_time = _date_and_time(alternative.slot, tz)
        alternatives.append(AlternativeTimePayload(
            date=alt_date,
            time=alt_time,
            available_participants=alternative.available_count
        ))

    return SuggestTimeResponse(
        suggested_date=suggested_date,
        suggested_time=suggested_time,
        reason=result.reason,
        available_participants=result.available_count,
        total_participants=result.total_count,
        alternative_times=alternatives,
        conflict_details=ConflictDetailsPayload(
            conflicting_participants=[
                ConflictingParticipantPayload(
                    user_id=entry.participant.user_id,
                    name=entry.participant.name,
                    conflict_reason=entry.reason
                )
                for entry in result.conflicts.conflicting_participants
            ],
            conflict_resolution_suggestion=result.conflicts.resolution_hint
        ),
        warnings=result.warnings
    )

def _meeting_conflict(entry: ConflictEntry) -> MeetingConflictPayload:
    interval = entry.conflicting_interval
    return MeetingConflictPayload(
        user_id=entry.participant.user_id,
        name=entry.participant.name,
        role=entry.participant.role.value,
        required_attendance=entry.participant.required_attendance,
        conflict_reason=entry.reason,
        conflicting_event=ConflictingEventPayload(
            title=interval.title,
            start_time=interval.start,
            end_time=interval.end
        )
    )

def _conflict_response(check: MeetingConflictCheck) -> DetectConflictsResponse:
    report = check.report
    return DetectConflictsResponse(
        has_conflicts=report.has_conflicts,
        conflicting_participants=[_meeting_conflict(entry) for entry in report.conflicting_participants],
        resolution_suggestion=report.resolution_hint,
        total_participants=check.total_participants,
        conflicting_participants_count=len(report.conflicting_participants),
        warnings=check.warnings
    )

@meeting_router.post("/suggest-time", response_model=SuggestTimeResponse)
async def suggest_time(
    payload: SuggestTimePayload,
    scheduler: MeetingScheduler = Depends(get_scheduler)
) -> SuggestTimeResponse:
    """Suggest a primary meeting time and up to three alternatives"""
    request = SuggestTimeRequest(
        participant_ids=payload.participant_ids,
        participant_roles=[
            ParticipantRoleInput(
                user_id=entry.user_id,
                role=entry.role,
                required_attendance=entry.required_attendance
            )
            for entry in payload.participant_roles
        ],
        duration_minutes=payload.duration_minutes,
        preferred_dates=payload.preferred_dates,
        meeting_purpose=payload.meeting_purpose
    )

    try:
        result = await scheduler.suggest_meeting_time(request)
    except SchedulingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SchedulingTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))

    return _suggestion_response(result, scheduler.tz)

@meeting_router.post("/detect-conflicts", response_model=DetectConflictsResponse)
async def detect_conflicts(
    payload: DetectConflictsPayload,
    scheduler: MeetingScheduler = Depends(get_scheduler)
) -> DetectConflictsResponse:
    """Check an existing meeting, optionally at a new time, against its participants' calendars"""
    try:
        check = await scheduler.detect_meeting_conflicts(
            payload.meeting_id,
            payload.new_start_time,
            payload.new_end_time
        )
    except MeetingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidMeetingRecordError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except SchedulingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SchedulingTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))

    return _conflict_response(check)
