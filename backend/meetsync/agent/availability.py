"""
Availability Scorer

Decides, for one candidate slot, which participants are free and tallies
overall and required-only availability. Pure computation over the schedules
handed in by the calendar aggregator.
"""

import logging
from typing import List

from .models import (
    AvailabilityScore, CandidateSlot, ParticipantAvailability, ParticipantSchedule
)

logger = logging.getLogger(__name__)

class AvailabilityScorer:
    """Scores candidate slots against participant schedules"""

    def score(self, slot: CandidateSlot, schedules: List[ParticipantSchedule]) -> AvailabilityScore:
        """
        Compute per-participant availability for a slot

        A participant is free iff none of their busy intervals overlaps
        [slot.start, slot.end). Overlapping busy intervals of the same
        participant simply reinforce each other.
        """
        per_participant = []
        available = 0
        required_available = 0
        required_total = 0

        for schedule in schedules:
            participant = schedule.participant
            free = schedule.is_free(slot.start, slot.end)
            per_participant.append(ParticipantAvailability(participant=participant, free=free))

            if free:
                available += 1
            if participant.required_attendance:
                required_total += 1
                if free:
                    required_available += 1

        return AvailabilityScore(
            slot=slot,
            per_participant=per_participant,
            available_count=available,
            required_available_count=required_available,
            required_total_count=required_total
        )

    @staticmethod
    def ranking_key(score: AvailabilityScore):
        """Sort key: more required participants free, then more participants free, then sooner"""
        return (-score.required_available_count, -score.available_count, score.slot.start)

__all__ = ['AvailabilityScorer']
