"""
Scheduling Intelligence - Slot Search and Suggestion Engine

Explores candidate start times inside working hours on weekdays (or on the
caller's preferred dates), scores every candidate against the participants'
schedules and ranks them with a deterministic policy:

1. more *required* participants free wins,
2. then more participants free overall,
3. then the earliest start.

The best candidate becomes the primary suggestion, the runners-up become
alternatives, and the conflict detector explains whatever clashes remain.
The engine never fails for lack of a perfect slot; it returns its best effort
with a reason that says how good that effort is.
"""

import logging
from typing import List, Optional, Tuple, Iterable, Union
from datetime import datetime, timedelta, time, date

from ..utils.config import SchedulingConfig
from ..utils.helpers import (
    is_business_day, next_business_day, upcoming_business_days, localize,
    parse_iso_date, format_duration, measure_execution_time
)
from .availability import AvailabilityScorer
from .conflict_detector import ConflictDetector
from .models import (
    AlternativeSlot, AvailabilityScore, CandidateSlot, ConflictReport,
    ParticipantSchedule, SuggestionResult
)

logger = logging.getLogger(__name__)

NO_PARTICIPANTS_REASON = "No participants were supplied; defaulting to the next business day at {hour:02d}:00."

class SchedulingIntelligence:
    """
    Deterministic slot search engine

    Ranking and conflict classification are computed locally so identical
    inputs always produce identical suggestions.
    """

    def __init__(
        self,
        scheduling: SchedulingConfig,
        scorer: Optional[AvailabilityScorer] = None,
        detector: Optional[ConflictDetector] = None
    ):
        """Initialize scheduling intelligence engine"""
        self.settings = scheduling
        self.tz = scheduling.tzinfo
        self.scorer = scorer or AvailabilityScorer()
        self.detector = detector or ConflictDetector(tz=self.tz)

        logger.info(
            f"Scheduling engine initialized ({scheduling.workday_start_hour:02d}:00-"
            f"{scheduling.workday_end_hour:02d}:00 {scheduling.timezone}, "
            f"{scheduling.horizon_days} day horizon)"
        )

    def today(self) -> date:
        return datetime.now(self.tz).date()

    @measure_execution_time
    def suggest(
        self,
        schedules: List[ParticipantSchedule],
        duration_minutes: int,
        preferred_dates: Optional[Iterable[Union[str, date]]] = None,
        meeting_purpose: str = "general discussion",
        reference_date: Optional[date] = None
    ) -> SuggestionResult:
        """
        Suggest a primary meeting time plus alternatives

        Args:
            schedules: Aggregated participant schedules
            duration_minutes: Meeting length
            preferred_dates: Restrict the search to these dates when non-empty
            meeting_purpose: Free text, used only for logging and phrasing
            reference_date: "Today" for horizon computation (defaults to now)

        Returns:
            SuggestionResult, even when no candidate suits every participant
        """
        if duration_minutes <= 0:
            raise ValueError("durationMinutes must be positive")

        reference_date = reference_date or self.today()
        logger.info(
            f"Searching {format_duration(duration_minutes)} slot for '{meeting_purpose}' "
            f"with {len(schedules)} participants"
        )

        if not schedules:
            return self.default_suggestion(
                total_count=0,
                available_count=0,
                reason=NO_PARTICIPANTS_REASON.format(hour=self.settings.default_meeting_hour),
                reference_date=reference_date,
                duration_minutes=duration_minutes
            )

        dates, warnings = self.build_horizon(preferred_dates or [], reference_date)
        candidates, fits_working_day = self.generate_candidates(dates, duration_minutes)

        ranked = self.rank(candidates, schedules)
        best = ranked[0]
        alternatives = [
            AlternativeSlot(slot=score.slot, available_count=score.available_count)
            for score in ranked[1:1 + self.settings.max_alternatives]
        ]

        reason = self.build_reason(best, fits_working_day)
        conflicts = self.detector.detect(best.slot, schedules)

        logger.info(
            f"Primary suggestion {best.slot.start.isoformat()} "
            f"({best.required_available_count}/{best.required_total_count} required, "
            f"{best.available_count}/{best.total_count} total) out of {len(ranked)} candidates"
        )

        return SuggestionResult(
            primary=best.slot,
            reason=reason,
            available_count=best.available_count,
            total_count=best.total_count,
            alternatives=alternatives,
            conflicts=conflicts,
            warnings=warnings
        )

    def rank(
        self,
        candidates: List[CandidateSlot],
        schedules: List[ParticipantSchedule]
    ) -> List[AvailabilityScore]:
        """Score every candidate and order them best first"""
        scores = [self.scorer.score(candidate, schedules) for candidate in candidates]
        scores.sort(key=AvailabilityScorer.ranking_key)
        return scores

    def build_horizon(
        self,
        preferred_dates: Iterable[Union[str, date]],
        reference_date: date
    ) -> Tuple[List[date], List[str]]:
        """
        Dates to search

        Preferred dates win when given; weekend entries are dropped. Without
        usable preferred dates the next N business days after the reference
        date are searched.
        """
        warnings = []
        preferred = sorted({parse_iso_date(value) for value in preferred_dates})

        if preferred:
            weekdays = [d for d in preferred if is_business_day(d)]
            for skipped in sorted(set(preferred) - set(weekdays)):
                warnings.append(f"Preferred date {skipped.isoformat()} falls on a weekend and was ignored")
            if weekdays:
                return weekdays, warnings
            warnings.append(
                f"No preferred date is a weekday; searching the next {self.settings.horizon_days} business days instead"
            )

        return upcoming_business_days(reference_date, self.settings.horizon_days), warnings

    def generate_candidates(
        self,
        dates: List[date],
        duration_minutes: int
    ) -> Tuple[List[CandidateSlot], bool]:
        """
        Start-time candidates on a fixed grid inside working hours

        Returns the candidates and whether the meeting fits inside the working
        day. When it does not, each date contributes a single best-effort
        candidate at the start of the working day.
        """
        first_minute = self.settings.workday_start_hour * 60
        last_minute = self.settings.workday_end_hour * 60
        step = self.settings.slot_granularity_minutes

        candidates = []
        for day in dates:
            for offset in range(first_minute, last_minute - duration_minutes + 1, step):
                start = localize(day, time(offset // 60, offset % 60), self.tz)
                candidates.append(CandidateSlot.starting_at(start, duration_minutes))

        if candidates:
            return candidates, True

        logger.warning(
            f"{format_duration(duration_minutes)} does not fit in working hours; "
            f"falling back to working-day starts"
        )
        fallback = [
            CandidateSlot.starting_at(
                localize(day, time(self.settings.workday_start_hour, 0), self.tz),
                duration_minutes
            )
            for day in dates
        ]
        return fallback, False

    def build_reason(self, best: AvailabilityScore, fits_working_day: bool = True) -> str:
        """Explain the primary suggestion from its availability facts"""
        attendance = f"{best.available_count}/{best.total_count} total participants can attend"

        if best.required_total_count == 0:
            reason = f"Selected because no participants are marked as required and {attendance}."
        elif best.all_required_free:
            reason = (
                f"Selected because all {best.required_total_count} required participants are free "
                f"and {attendance}."
            )
        else:
            reason = (
                f"Best available time with degraded availability: only "
                f"{best.required_available_count}/{best.required_total_count} required participants "
                f"are free and {attendance}. No time in the search window had every required "
                f"participant available."
            )

        if not fits_working_day:
            reason += " The meeting extends beyond working hours."
        return reason

    def default_suggestion(
        self,
        total_count: int,
        available_count: int,
        reason: str,
        reference_date: Optional[date] = None,
        duration_minutes: Optional[int] = None,
        warnings: Optional[List[str]] = None
    ) -> SuggestionResult:
        """Next business day at the default hour, used when there is nothing to rank"""
        reference_date = reference_date or self.today()
        duration_minutes = duration_minutes or self.settings.default_duration_minutes
        start = localize(
            next_business_day(reference_date),
            time(self.settings.default_meeting_hour, 0),
            self.tz
        )

        logger.info(f"Returning default suggestion {start.isoformat()}: {reason}")
        return SuggestionResult(
            primary=CandidateSlot.starting_at(start, duration_minutes),
            reason=reason,
            available_count=min(available_count, total_count),
            total_count=total_count,
            alternatives=[],
            conflicts=ConflictReport(),
            warnings=list(warnings or [])
        )

# Export main classes
__all__ = [
    'SchedulingIntelligence',
    'NO_PARTICIPANTS_REASON'
]
