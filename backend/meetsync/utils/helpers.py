"""
Shared Utility Functions for MeetSync

Provides common utilities for date/time processing, interval arithmetic,
input parsing, error responses and timing used across the scheduling
components.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Any, Union
from datetime import datetime, timedelta, date, time
from dateutil import parser as date_parser
import pytz
from functools import wraps

# Configure module logger
logger = logging.getLogger(__name__)

# =============================================================================
# Date and Time Utilities
# =============================================================================

def is_business_day(target_date: date) -> bool:
    """Check if a date is a business day (Monday-Friday)"""
    return target_date.weekday() < 5  # 0-4 are Monday-Friday

def next_business_day(reference_date: date) -> date:
    """First business day strictly after reference_date"""
    candidate = reference_date + timedelta(days=1)
    while not is_business_day(candidate):
        candidate += timedelta(days=1)
    return candidate

def upcoming_business_days(reference_date: date, count: int) -> List[date]:
    """The next `count` business days after reference_date"""
    days = []
    current = reference_date
    while len(days) < count:
        current = next_business_day(current)
        days.append(current)
    return days

def localize(target_date: date, at: time, tz) -> datetime:
    """Combine a date and wall-clock time in the given pytz timezone"""
    return tz.localize(datetime.combine(target_date, at))

def ensure_timezone(dt: datetime, tz=pytz.UTC) -> datetime:
    """Attach tz to naive datetimes; aware datetimes are returned unchanged"""
    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt

def times_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Check if two half-open time ranges [start1, end1) and [start2, end2) overlap"""
    return start1 < end2 and start2 < end1

def format_duration(minutes: int) -> str:
    """Format duration in minutes to human-readable string"""
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    hours = minutes // 60
    remaining_minutes = minutes % 60
    if remaining_minutes == 0:
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{hours} hour{'s' if hours != 1 else ''} and {remaining_minutes} minute{'s' if remaining_minutes != 1 else ''}"

def format_time_range(start: datetime, end: datetime) -> str:
    """Render an interval as 'HH:MM to HH:MM on YYYY-MM-DD'"""
    if start.date() == end.date():
        return f"{start.strftime('%H:%M')} to {end.strftime('%H:%M')} on {start.date().isoformat()}"
    return f"{start.strftime('%Y-%m-%d %H:%M')} to {end.strftime('%Y-%m-%d %H:%M')}"

# =============================================================================
# Parsing Utilities
# =============================================================================

def parse_iso_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD string; raises ValueError for anything else"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.isoparse(value.strip()).date()
    except (ValueError, OverflowError, AttributeError) as exc:
        raise ValueError(f"Invalid ISO date: {value!r}") from exc

def parse_iso_datetime(value: Union[str, datetime], tz=pytz.UTC) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are interpreted in tz"""
    if isinstance(value, datetime):
        return ensure_timezone(value, tz)
    try:
        parsed = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError, AttributeError) as exc:
        raise ValueError(f"Invalid ISO datetime: {value!r}") from exc
    return ensure_timezone(parsed, tz)

# =============================================================================
# Error Handling and Logging
# =============================================================================

def create_error_response(
    error_message: str,
    error_code: str = "GENERAL_ERROR",
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create standardized error response"""
    return {
        "success": False,
        "error": {
            "message": error_message,
            "code": error_code,
            "details": details or {},
            "timestamp": datetime.now().isoformat()
        }
    }

def measure_execution_time(func):
    """Decorator to measure function execution time"""
    @wraps(func)
    async def async_wrapper(*args, **kwargs):
        start_time = datetime.now()
        try:
            result = await func(*args, **kwargs)
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.debug(f"{func.__name__} executed in {execution_time:.3f} seconds")
            return result
        except Exception as e:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(f"{func.__name__} failed after {execution_time:.3f} seconds: {str(e)}")
            raise

    @wraps(func)
    def sync_wrapper(*args, **kwargs):
        start_time = datetime.now()
        try:
            result = func(*args, **kwargs)
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.debug(f"{func.__name__} executed in {execution_time:.3f} seconds")
            return result
        except Exception as e:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(f"{func.__name__} failed after {execution_time:.3f} seconds: {str(e)}")
            raise

    if asyncio.iscoroutinefunction(func):
        return async_wrapper
    else:
        return sync_wrapper

# =============================================================================
# Export all utility functions
# =============================================================================

__all__ = [
    # Date/Time utilities
    'is_business_day',
    'next_business_day',
    'upcoming_business_days',
    'localize',
    'ensure_timezone',
    'times_overlap',
    'format_duration',
    'format_time_range',

    # Parsing
    'parse_iso_date',
    'parse_iso_datetime',

    # Error handling
    'create_error_response',
    'measure_execution_time',
]
