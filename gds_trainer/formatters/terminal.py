"""Fixed-width rendering shared by the query displays and the PNR views.

Report lines are built from a list of ``Column`` specs so that alignment is
computed in one place: each column is as wide as its widest cell on the page
(never narrower than the column's minimum) and cells are padded left or right.
"""

from datetime import datetime, timedelta
from typing import List, NamedTuple, Optional, Sequence

from gds_trainer.utils.dates import MONTHS, WEEKDAYS, format_gds_date


class Column(NamedTuple):
    min_width: int = 0
    align: str = "left"  # "left" | "right"


AIRCRAFT_CODES = {
    "AIRBUS A320": "320",
    "A320": "320",
    "AIRBUS A321": "321",
    "A321": "321",
    "AIRBUS A330": "330",
    "A330": "330",
    "AIRBUS A340": "340",
    "A340": "340",
    "AIRBUS A350": "350",
    "A350": "350",
    "AIRBUS A380": "380",
    "A380": "380",
    "BOEING 737": "737",
    "B737": "737",
    "BOEING 737-800": "738",
    "B738": "738",
    "BOEING 747": "747",
    "B747": "747",
    "BOEING 767": "767",
    "B767": "767",
    "BOEING 777": "777",
    "B777": "777",
    "BOEING 787": "787",
    "B787": "787",
    "EMBRAER E190": "E90",
    "EMBRAER 190": "E90",
    "E190": "E90",
    "EMBRAER E195": "E95",
    "EMBRAER 195": "E95",
    "E195": "E95",
}


def aircraft_code(equipment: Optional[str]) -> str:
    """Map an aircraft name to its 3-character IATA equipment code."""
    if not equipment:
        return "---"
    if len(equipment) <= 3:
        return equipment.upper()
    return AIRCRAFT_CODES.get(equipment.strip().upper(), equipment.upper())


def _pad(cell: str, width: int, align: str) -> str:
    return cell.rjust(width) if align == "right" else cell.ljust(width)


def render_table(rows: Sequence[Sequence[str]], columns: Sequence[Column], sep: str = " ") -> List[str]:
    """Render rows of cells into aligned lines, trailing blanks stripped."""
    if not rows:
        return []
    widths = []
    for i, col in enumerate(columns):
        longest = max(len(r[i]) for r in rows)
        widths.append(max(col.min_width, longest))
    lines = []
    for r in rows:
        cells = [_pad(str(c), widths[i], columns[i].align) for i, c in enumerate(r)]
        lines.append(sep.join(cells).rstrip())
    return lines


def right_align_info(left: str, info: str, width: int) -> str:
    """Place ``info`` flush right on a line ``width`` wide, after ``left``.

    When ``left`` is already too long the two are separated by one space.
    """
    gap = max(width - len(left) - len(info), 1)
    return f"{left}{' ' * gap}{info}"


def now_stamp(now: datetime) -> str:
    """Weekday, date and time as shown in banners, e.g. "MO 19OCT 1430"."""
    return f"{WEEKDAYS[now.weekday()]} {now.day:02d}{MONTHS[now.month - 1]} {now:%H%M}"


def banner(title: str, destination: str, city: str, country: str, info: str,
           width: int = 0, suffix: str = "") -> str:
    left = f"** AMADEUS {title} ** {destination} {city}.{country}"
    if suffix:
        left += f" ({suffix})"
    return right_align_info(left, info, width)


def timetable_window(now: datetime) -> str:
    """Validity window for the TN banner: today and one week out, DDMMMYY."""
    start = now.date()
    return f"{format_gds_date(start, with_year=True)} {format_gds_date(start + timedelta(days=7), with_year=True)}"
