from datetime import date, datetime
from typing import Optional
import re

import dateparser
import pytz

from gds_trainer.config import settings


MONTHS = ["JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"]
WEEKDAYS = ["MO", "TU", "WE", "TH", "FR", "SA", "SU"]  # indexed by date.weekday()

GDS_DATE_RE = re.compile(r"^(\d{1,2})([A-Z]{3})(\d{2}|\d{4})?$", re.IGNORECASE)


def get_current_datetime(tz: Optional[str] = None) -> datetime:
    """Current wall-clock time in the terminal's time zone."""
    return datetime.now(pytz.timezone(tz or settings.TZ))


def is_valid_month(abbr: str) -> bool:
    return abbr.upper() in MONTHS


def resolve_gds_date(token: Optional[str], today: Optional[date] = None) -> Optional[date]:
    """Turn a DDMMM token into the next calendar date it can refer to.

    A date already passed this year rolls over to next year, the way an agent
    typing 05JAN in December means next January.
    """
    if not token:
        return None
    m = GDS_DATE_RE.match(token.strip())
    if not m:
        return None
    day = int(m.group(1))
    month_abbr = m.group(2).upper()
    if month_abbr not in MONTHS:
        return None
    month = MONTHS.index(month_abbr) + 1
    today = today or get_current_datetime().date()

    if m.group(3):
        year = int(m.group(3))
        if year < 100:
            year += 2000
        try:
            return date(year, month, day)
        except ValueError:
            return None

    for year in (today.year, today.year + 1):
        try:
            candidate = date(year, month, day)
        except ValueError:
            # 29FEB outside a leap year
            continue
        if candidate >= today:
            return candidate
    return None


def days_until(token: Optional[str], today: Optional[date] = None) -> int:
    """Days between today and the travel date; 0 when the command had no date."""
    today = today or get_current_datetime().date()
    target = resolve_gds_date(token, today)
    if target is None:
        return 0
    return (target - today).days


def format_gds_date(d: date, with_year: bool = False) -> str:
    out = f"{d.day:02d}{MONTHS[d.month - 1]}"
    if with_year:
        out += f"{d.year % 100:02d}"
    return out


def day_of_week_number(d: date) -> str:
    """GDS day numbering: 1=Monday .. 7=Sunday."""
    return str(d.isoweekday())


def to_iso_date(text: Optional[str]) -> str:
    """Normalise a stored flight date to YYYY-MM-DD.

    Seed data arrives as 15/11/2025, 2025-11-15, 15NOV25 and friends. Day-first
    is assumed for slash and dash forms. Returns "" when the text is not a date.
    """
    if not text:
        return ""
    raw = str(text).strip()
    try:
        return date.fromisoformat(raw[:10]).isoformat()
    except ValueError:
        pass
    m = GDS_DATE_RE.match(raw)
    if m:
        d = resolve_gds_date(raw)
        return d.isoformat() if d else ""
    dt = dateparser.parse(
        raw,
        settings={"DATE_ORDER": "DMY", "PREFER_DAY_OF_MONTH": "first"},
    )
    if dt:
        return dt.date().isoformat()
    return ""


def iso_to_gds(iso: Optional[str]) -> Optional[str]:
    if not iso:
        return None
    try:
        return format_gds_date(date.fromisoformat(iso))
    except ValueError:
        return None


def format_duration_minutes(total_minutes: Optional[int]) -> str:
    """Convert a duration to the terminal's H:MM form, e.g. 765 -> "12:45"."""
    if total_minutes is None or total_minutes < 0:
        return "----"
    h, m = divmod(int(total_minutes), 60)
    return f"{h}:{m:02d}"


def format_duration_hours(hours: Optional[float]) -> str:
    if not hours:
        return "----"
    return format_duration_minutes(round(hours * 60))
