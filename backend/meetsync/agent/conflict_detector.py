"""
Conflict Detector

Re-scans participant schedules for commitments overlapping a slot, whether a
freshly generated candidate or the stored start/end of an existing meeting,
and explains each clash together with a resolution hint.
"""

import logging
from typing import Dict, List, Optional

from ..utils.helpers import format_time_range
from .models import (
    CandidateSlot, ConflictEntry, ConflictReport, Participant, ParticipantSchedule
)

logger = logging.getLogger(__name__)

class ConflictDetector:
    """Detects and classifies scheduling conflicts by required attendance"""

    def __init__(self, tz=None):
        """Times in conflict explanations are rendered in tz when given"""
        self.tz = tz

    def detect(
        self,
        slot: CandidateSlot,
        schedules: List[ParticipantSchedule],
        participants_meta: Optional[List[Participant]] = None
    ) -> ConflictReport:
        """
        Build a conflict report for a slot

        Args:
            slot: Candidate or existing meeting time
            schedules: Participant schedules to check
            participants_meta: Optional role/required-attendance overrides keyed by user_id

        Returns:
            ConflictReport with one entry per conflicting participant
        """
        overrides: Dict[int, Participant] = {p.user_id: p for p in participants_meta or []}
        entries = []

        for schedule in schedules:
            participant = overrides.get(schedule.participant.user_id, schedule.participant)
            overlapping = schedule.overlapping(slot.start, slot.end)
            if not overlapping:
                continue

            # Earliest-starting overlap explains the conflict
            interval = overlapping[0]
            start, end = interval.start, interval.end
            if self.tz is not None:
                start, end = start.astimezone(self.tz), end.astimezone(self.tz)
            reason = f'{participant.name} has "{interval.title}" from {format_time_range(start, end)}'
            if len(overlapping) > 1:
                others = len(overlapping) - 1
                reason += f" and {others} other commitment{'s' if others != 1 else ''} in this time"

            entries.append(ConflictEntry(
                participant=participant,
                conflicting_interval=interval,
                reason=reason
            ))

        report = ConflictReport(
            conflicting_participants=entries,
            resolution_hint=self.resolution_hint(entries)
        )

        if entries:
            logger.info(
                f"Found {len(entries)} conflicting participants for {slot.start.isoformat()} "
                f"({len(report.required_conflicts)} required)"
            )
        return report

    def resolution_hint(self, entries: List[ConflictEntry]) -> str:
        """Recommend rescheduling when required participants clash"""
        if not entries:
            return ""

        required = [entry.participant.name for entry in entries if entry.participant.required_attendance]
        if required:
            count = len(required)
            return (
                f"Rescheduling is recommended: {count} required participant{'s' if count != 1 else ''} "
                f"({', '.join(required)}) {'have' if count != 1 else 'has'} conflicting commitments."
            )

        optional = [entry.participant.name for entry in entries]
        return (
            f"Only optional participants have conflicts ({', '.join(optional)}). "
            f"The organizer may proceed with this time or consider one of the alternative times."
        )

__all__ = ['ConflictDetector']
