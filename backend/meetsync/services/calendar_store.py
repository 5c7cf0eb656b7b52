"""
Calendar Store Clients

Read-only access to the LMS that owns users, generic events and meetings.
`LMSCalendarClient` talks to the LMS REST API over aiohttp; the in-memory
store serves local development and tests. Both hand back raw JSON-like
records; validation happens in the calendar aggregator.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Any, Protocol
from urllib.parse import urljoin

import aiohttp

from ..utils.config import CalendarStoreConfig

logger = logging.getLogger(__name__)

class CalendarStoreError(Exception):
    """Raised when the LMS cannot be reached or answers with an error"""

class CalendarStore(Protocol):
    """Collaborator interface consumed by the scheduling core"""

    async def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]: ...

    async def get_user_events(self, user_id: int) -> List[Dict[str, Any]]: ...

    async def get_user_meetings(self, user_id: int) -> List[Dict[str, Any]]: ...

    async def get_meeting_by_id(self, meeting_id: int) -> Optional[Dict[str, Any]]: ...

class LMSCalendarClient:
    """
    HTTP client for the LMS REST API

    Endpoints used:
        GET /api/users/{id}
        GET /api/users/{id}/events
        GET /api/users/{id}/meetings
        GET /api/meetings/{id}
    """

    def __init__(self, store_config: CalendarStoreConfig):
        """Initialize LMS client"""
        self.base_url = store_config.api_url.rstrip('/') + '/'
        self.api_token = store_config.api_token
        self.timeout = store_config.timeout_seconds
        self.session: Optional[aiohttp.ClientSession] = None
        self.is_initialized = False

        logger.info(f"LMS calendar client configured for {self.base_url}")

    async def initialize(self) -> bool:
        """Open the HTTP session"""
        try:
            headers = {
                "User-Agent": "MeetSync-Scheduler/1.0",
                "Accept": "application/json"
            }
            if self.api_token:
                headers["Authorization"] = f"Bearer {self.api_token}"

            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=headers
            )
            self.is_initialized = True
            logger.info("LMS calendar client initialized")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize LMS calendar client: {str(e)}")
            return False

    async def _get_json(self, path: str) -> Optional[Any]:
        """GET a resource; None on 404, CalendarStoreError on anything else unexpected"""
        if self.session is None:
            raise CalendarStoreError("LMS calendar client is not initialized")

        url = urljoin(self.base_url, path.lstrip('/'))
        try:
            async with self.session.get(url) as response:
                if response.status == 404:
                    return None
                if response.status != 200:
                    raise CalendarStoreError(f"GET {path} returned HTTP {response.status}")
                return await response.json()
        except aiohttp.ClientError as e:
            raise CalendarStoreError(f"GET {path} failed: {str(e)}") from e

    async def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        return await self._get_json(f"/api/users/{user_id}")

    async def get_user_events(self, user_id: int) -> List[Dict[str, Any]]:
        return await self._get_json(f"/api/users/{user_id}/events") or []

    async def get_user_meetings(self, user_id: int) -> List[Dict[str, Any]]:
        return await self._get_json(f"/api/users/{user_id}/meetings") or []

    async def get_meeting_by_id(self, meeting_id: int) -> Optional[Dict[str, Any]]:
        return await self._get_json(f"/api/meetings/{meeting_id}")

    async def cleanup(self) -> None:
        """Cleanup resources"""
        if self.session is not None:
            await self.session.close()
            self.session = None
        self.is_initialized = False
        logger.info("LMS calendar client cleaned up")

class InMemoryCalendarStore:
    """
    Dictionary-backed calendar store

    Meetings are registered once and indexed for each of their participants,
    mirroring how the LMS lists a user's meetings. `failing_users` and
    `delays` let callers simulate unreachable or slow calendars.
    """

    def __init__(self):
        self.users: Dict[int, Dict[str, Any]] = {}
        self.events: Dict[int, List[Dict[str, Any]]] = {}
        self.meetings: Dict[int, Dict[str, Any]] = {}
        self.failing_users: set = set()
        self.delays: Dict[int, float] = {}
        self.is_initialized = True

    def add_user(self, user_id: int, name: str, **extra) -> None:
        self.users[user_id] = {"id": user_id, "name": name, **extra}

    def add_event(self, user_id: int, event: Dict[str, Any]) -> None:
        self.events.setdefault(user_id, []).append(event)

    def add_meeting(self, meeting: Dict[str, Any]) -> None:
        self.meetings[int(meeting["id"])] = meeting

    async def _simulate(self, user_id: int) -> None:
        delay = self.delays.get(user_id)
        if delay:
            await asyncio.sleep(delay)
        if user_id in self.failing_users:
            raise CalendarStoreError(f"Calendar for user {user_id} is unavailable")

    async def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        await self._simulate(user_id)
        return self.users.get(user_id)

    async def get_user_events(self, user_id: int) -> List[Dict[str, Any]]:
        await self._simulate(user_id)
        return list(self.events.get(user_id, []))

    async def get_user_meetings(self, user_id: int) -> List[Dict[str, Any]]:
        await self._simulate(user_id)
        return [
            meeting for meeting in self.meetings.values()
            if user_id in _participant_ids(meeting)
        ]

    async def get_meeting_by_id(self, meeting_id: int) -> Optional[Dict[str, Any]]:
        return self.meetings.get(meeting_id)

    async def cleanup(self) -> None:
        pass

def _participant_ids(meeting: Dict[str, Any]) -> List[int]:
    ids = []
    for entry in meeting.get("participants") or []:
        if isinstance(entry, int):
            ids.append(entry)
        else:
            ids.append(int(entry.get("userId", entry.get("user_id"))))
    return ids

# Export the clients
__all__ = [
    'CalendarStore',
    'CalendarStoreError',
    'LMSCalendarClient',
    'InMemoryCalendarStore'
]
