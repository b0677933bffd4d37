# attendance_engine/utils/timezones.py
"""Institute time zone resolution."""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.config import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Windows zone ids seen in institute settings, mapped to their IANA equivalents
WINDOWS_ZONE_ALIASES = {
    "Pakistan Standard Time": "Asia/Karachi",
    "India Standard Time": "Asia/Kolkata",
    "Bangladesh Standard Time": "Asia/Dhaka",
    "Arabian Standard Time": "Asia/Dubai",
    "Arab Standard Time": "Asia/Riyadh",
    "GMT Standard Time": "Europe/London",
    "W. Europe Standard Time": "Europe/Berlin",
    "Eastern Standard Time": "America/New_York",
    "Central Standard Time": "America/Chicago",
    "Pacific Standard Time": "America/Los_Angeles",
    "UTC": "UTC",
}


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


def lookup_zone(time_zone_id: Optional[str]) -> Optional[ZoneInfo]:
    """Return the zone for an IANA or Windows id, or None if it is unknown."""
    if not time_zone_id or not time_zone_id.strip():
        return None
    key = WINDOWS_ZONE_ALIASES.get(time_zone_id.strip(), time_zone_id.strip())
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def resolve_zone(time_zone_id: Optional[str]) -> ZoneInfo:
    """Resolve an institute's zone, falling back to the configured default."""
    zone = lookup_zone(time_zone_id)
    if zone is None:
        if time_zone_id:
            logger.warning("Unknown time zone '%s', falling back to %s", time_zone_id, settings.default_time_zone)
        zone = lookup_zone(settings.default_time_zone) or ZoneInfo("UTC")
    return zone


def local_now(zone: ZoneInfo, clock: Clock = utc_clock) -> datetime:
    """Current wall-clock time in ``zone`` as a naive local datetime."""
    now = clock()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(zone).replace(tzinfo=None)
