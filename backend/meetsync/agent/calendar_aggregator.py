"""
Calendar Aggregator

Collects each participant's busy intervals (generic events plus meetings)
from the calendar store into one normalized schedule per participant.
Fetches run concurrently with a bounded per-participant timeout; a broken or
slow calendar leaves that participant with an empty schedule and a warning
instead of failing the whole request.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Any, Tuple

from ..services.calendar_store import CalendarStore
from .models import (
    AggregationResult, AttendancePolicy, BusyInterval, IntervalSource,
    ParticipantSchedule, StoredMeeting
)

logger = logging.getLogger(__name__)

def is_cancelled(record: Any) -> bool:
    return isinstance(record, dict) and str(record.get('status') or '').strip().lower() == 'cancelled'

class CalendarAggregator:
    """Builds per-participant schedules from the calendar store"""

    def __init__(self, store: CalendarStore, tz, fetch_timeout: float = 5.0):
        """
        Args:
            store: Calendar collaborator, constructed by the caller
            tz: Timezone used for naive timestamps in raw records
            fetch_timeout: Upper bound in seconds for one participant's fetch
        """
        self.store = store
        self.tz = tz
        self.fetch_timeout = fetch_timeout

    async def aggregate(
        self,
        participant_ids: List[int],
        participants_meta: Optional[Dict[int, AttendancePolicy]] = None,
        exclude_meeting: Optional[StoredMeeting] = None
    ) -> AggregationResult:
        """
        Fetch and normalize the schedules of all participants

        Args:
            participant_ids: Participants to aggregate, in output order
            participants_meta: Role/required-attendance policy per user id
            exclude_meeting: Meeting whose own calendar entries are left out

        Returns:
            AggregationResult in the order of participant_ids
        """
        participants_meta = participants_meta or {}

        results = await asyncio.gather(*[
            self._fetch_schedule(
                user_id,
                participants_meta.get(user_id, AttendancePolicy()),
                exclude_meeting
            )
            for user_id in participant_ids
        ])

        schedules = []
        warnings = []
        failed_ids = []
        for user_id, (schedule, warning) in zip(participant_ids, results):
            schedules.append(schedule)
            if warning:
                warnings.append(warning)
                failed_ids.append(user_id)

        logger.info(
            f"Aggregated {len(schedules)} schedules "
            f"({sum(len(s.busy) for s in schedules)} busy intervals, {len(failed_ids)} unavailable)"
        )
        return AggregationResult(schedules=schedules, warnings=warnings, failed_ids=failed_ids)

    async def _fetch_schedule(
        self,
        user_id: int,
        policy: AttendancePolicy,
        exclude_meeting: Optional[StoredMeeting]
    ) -> Tuple[ParticipantSchedule, Optional[str]]:
        """One participant's schedule, failing open to an empty one"""
        try:
            user, events, meetings = await asyncio.wait_for(
                asyncio.gather(
                    self.store.get_user_by_id(user_id),
                    self.store.get_user_events(user_id),
                    self.store.get_user_meetings(user_id)
                ),
                timeout=self.fetch_timeout
            )
        except asyncio.TimeoutError:
            warning = (
                f"Calendar for participant {user_id} did not respond within "
                f"{self.fetch_timeout:g}s; treating them as available"
            )
            logger.warning(warning)
            return ParticipantSchedule(participant=policy.apply(user_id, f"User {user_id}")), warning
        except Exception as e:
            warning = f"Calendar for participant {user_id} is unavailable ({str(e)}); treating them as available"
            logger.warning(warning)
            return ParticipantSchedule(participant=policy.apply(user_id, f"User {user_id}")), warning

        participant = policy.apply(user_id, self._display_name(user_id, user))
        busy = self._normalize(user_id, events or [], IntervalSource.EVENT)
        busy.extend(self._normalize(user_id, meetings or [], IntervalSource.MEETING))

        if exclude_meeting is not None:
            busy = [interval for interval in busy if not exclude_meeting.owns(interval)]

        busy.sort(key=lambda interval: (interval.start, interval.end))
        return ParticipantSchedule(participant=participant, busy=busy), None

    def _normalize(
        self,
        user_id: int,
        records: List[Dict[str, Any]],
        source: IntervalSource
    ) -> List[BusyInterval]:
        """Validate raw records, skipping the malformed ones"""
        intervals = []
        for record in records:
            if source == IntervalSource.MEETING and is_cancelled(record):
                logger.debug(f"Ignoring cancelled meeting {record.get('id')!r} for participant {user_id}")
                continue
            try:
                intervals.append(BusyInterval.from_record(record, source, self.tz))
            except ValueError as e:
                logger.warning(f"Skipping malformed {source.value} for participant {user_id}: {str(e)}")
        return intervals

    @staticmethod
    def _display_name(user_id: int, user: Optional[Dict[str, Any]]) -> str:
        if user and user.get('name'):
            return str(user['name'])
        return f"User {user_id}"

__all__ = ['CalendarAggregator']
