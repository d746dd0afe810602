"""Ban state engine.

A stored ban is one of three values: null (not banned), -1 (permanent) or a
positive millisecond timestamp (banned until then). Records are converted to
the tagged `BanStatus` as soon as they are read and back only when written.
A timed ban whose end has passed reads as expired; nothing clears it in
storage until the next explicit write.
"""
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from portal.errors import FetchError, InvalidBanDuration

MS_PER_MINUTE = 60_000
MS_PER_HOUR = 3_600_000
MS_PER_DAY = 86_400_000
PERMANENT_SENTINEL = -1

LABEL_NOT_BANNED = 'no ban'
LABEL_PERMANENT = 'permanent ban'
LABEL_EXPIRED = 'ban expired'

DATE_FORMATS = {
    'fr-FR': '%d/%m/%Y %H:%M',
    'en-US': '%m/%d/%Y, %I:%M %p',
    'en-GB': '%d/%m/%Y, %H:%M',
    'de-DE': '%d.%m.%Y, %H:%M',
}
# Bare language tags fall back to these regions
LANGUAGE_DEFAULTS = {'fr': 'fr-FR', 'en': 'en-US', 'de': 'de-DE'}
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M'


@dataclass(frozen=True)
class NotBanned:
    pass


@dataclass(frozen=True)
class Permanent:
    pass


@dataclass(frozen=True)
class Until:
    end_ms: int


BanStatus = Union[NotBanned, Permanent, Until]

NOT_BANNED = NotBanned()
PERMANENT = Permanent()


def now_ms() -> int:
    return int(time.time() * 1000)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def decode_ban_end(raw) -> BanStatus:
    """Convert a stored ``banEnd`` value into a `BanStatus`."""
    if raw is None:
        return NOT_BANNED
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise FetchError(f'Invalid stored ban value: {raw!r}')
    if raw == PERMANENT_SENTINEL:
        return PERMANENT
    if raw > 0 and float(raw).is_integer():
        return Until(int(raw))
    raise FetchError(f'Invalid stored ban value: {raw!r}')


def encode_ban_end(status: BanStatus) -> Optional[int]:
    if isinstance(status, NotBanned):
        return None
    if isinstance(status, Permanent):
        return PERMANENT_SENTINEL
    if isinstance(status, Until):
        return status.end_ms
    raise TypeError(f'Not a ban status: {status!r}')


def is_banned(status: BanStatus, now: int) -> bool:
    if isinstance(status, Permanent):
        return True
    if isinstance(status, Until):
        return now < status.end_ms
    return False


def compute_ban_end(permanent: bool, days: int, hours: int, minutes: int, now: int) -> BanStatus:
    """Return the ban a moderator asked for.

    Negative components count as zero. Hours and minutes are not capped.
    Raises InvalidBanDuration when the ban is neither permanent nor longer
    than zero; callers must not write anything in that case.
    """
    if permanent:
        return PERMANENT
    duration = (
        max(0, int(days)) * MS_PER_DAY
        + max(0, int(hours)) * MS_PER_HOUR
        + max(0, int(minutes)) * MS_PER_MINUTE
    )
    if duration <= 0:
        raise InvalidBanDuration()
    return Until(now + duration)


def clear_ban() -> BanStatus:
    return NOT_BANNED


def resolve_date_format(locale: Optional[str]) -> str:
    if not locale:
        return DEFAULT_DATE_FORMAT
    tag = locale.replace('_', '-')
    if tag in DATE_FORMATS:
        return DATE_FORMATS[tag]
    region_default = LANGUAGE_DEFAULTS.get(tag.split('-')[0].lower())
    return DATE_FORMATS.get(region_default, DEFAULT_DATE_FORMAT)


def format_ban_end_date(end_ms: int, locale: Optional[str] = None, tz: Optional[str] = None) -> str:
    """Local date of a ban end; ends beyond the calendar's range render as raw milliseconds."""
    zone = ZoneInfo(tz) if tz and tz.upper() != 'UTC' else timezone.utc
    try:
        moment = datetime.fromtimestamp(end_ms / 1000, tz=zone)
    except (OverflowError, ValueError, OSError):
        return str(end_ms)
    return moment.strftime(resolve_date_format(locale))


def format_ban_status(status: BanStatus, now: int, locale: Optional[str] = None, tz: Optional[str] = None) -> str:
    if isinstance(status, Permanent):
        return LABEL_PERMANENT
    if isinstance(status, Until):
        if now >= status.end_ms:
            return LABEL_EXPIRED
        return format_ban_end_date(status.end_ms, locale, tz)
    return LABEL_NOT_BANNED
