"""Availability (AN), schedule (SN) and timetable (TN) displays.

All three modes share one query path: equality filters on origin,
destination and optionally airline and date, rows sorted by departure time,
one page at a time. They differ only in how a row is filtered and drawn:

* AN drops rows without seats in the requested class and shows seat counts.
* SN keeps every row and shows closed classes as ``C``.
* TN shows operating days and the validity range instead of seats.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from gds_trainer.config import settings
from gds_trainer.errors import CommandSyntaxError
from gds_trainer.formatters.terminal import (
    Column,
    aircraft_code,
    banner,
    now_stamp,
    render_table,
    timetable_window,
)
from gds_trainer.obs.logger import log_event
from gds_trainer.parse.commands import Availability
from gds_trainer.query.pagination import PageSnapshot, PaginationCursor
from gds_trainer.repository.base import FlightQuery, FlightRepository
from gds_trainer.types import FlightRow
from gds_trainer.utils.dates import days_until, format_duration_hours, get_current_datetime, resolve_gds_date


TITLES = {
    "AN": "AVAILABILITY - AN",
    "SN": "SCHEDULES - SN",
    "TN": "TIMETABLE - TN",
}

# Used when the repository has no city record for a destination
DEFAULT_DESTINATIONS: Dict[str, Tuple[str, str]] = {
    "MAD": ("MADRID", "ES"),
    "BCN": ("BARCELONA", "ES"),
    "LHR": ("LONDON", "GB"),
    "CDG": ("PARIS", "FR"),
    "FCO": ("ROME", "IT"),
    "EZE": ("BUENOS AIRES", "AR"),
    "AEP": ("BUENOS AIRES", "AR"),
    "BUE": ("BUENOS AIRES", "AR"),
    "COR": ("CORDOBA", "AR"),
    "SCL": ("SANTIAGO", "CL"),
    "MIA": ("MIAMI", "US"),
    "JFK": ("NEW YORK", "US"),
}

CLOSED = "C"

SEAT_COLUMNS = [
    Column(1),            # line number
    Column(2),            # airline
    Column(4, "right"),   # flight number
    Column(0),            # class/seat block
    Column(3),            # origin
    Column(1),            # departure terminal
    Column(3),            # destination
    Column(1),            # arrival terminal
    Column(4),            # departure time
    Column(4),            # arrival time
    Column(6),            # stops/equipment
    Column(5, "right"),   # duration
]

TIMETABLE_COLUMNS = [
    Column(1),            # line number
    Column(2),            # airline
    Column(4, "right"),   # flight number
    Column(7),            # operating days
    Column(3),            # origin
    Column(1),            # departure terminal
    Column(3),            # destination
    Column(1),            # arrival terminal
    Column(4),            # departure time
    Column(4),            # arrival time
    Column(1),            # stops
    Column(7),            # valid from
    Column(7),            # valid to
    Column(3),            # equipment
    Column(5, "right"),   # duration
]


def hhmm(value: Optional[str]) -> str:
    return (value or "").replace(":", "")


def dedupe(rows: List[FlightRow]) -> List[FlightRow]:
    """Drop rows describing a flight already seen (same airline, number, date and time)."""
    seen = set()
    out = []
    for row in rows:
        key = row.identity()
        if key in seen:
            continue
        seen.add(key)
        out.append(row)
    return out


def seat_block(row: FlightRow, mode: str) -> str:
    cells = []
    for code, seats in row.class_availability.items():
        shown = CLOSED if mode == "SN" and seats <= 0 else str(seats)
        cells.append(f"{code}{shown}")
    return " ".join(cells)


def flight_cells(index: int, row: FlightRow, mode: str) -> List[str]:
    head = [str(index), row.airline_code, row.flight_number]
    route = [
        row.departure_airport_code,
        row.departure_terminal or "",
        row.arrival_airport_code,
        row.arrival_terminal or "",
        hhmm(row.departure_time),
        hhmm(row.arrival_time),
    ]
    duration = format_duration_hours(row.duration_hours)
    if mode == "TN":
        return head + [row.days_of_operation or "D"] + route + [
            "0",
            row.valid_from or "",
            row.valid_to or "",
            aircraft_code(row.equipment_code),
            duration,
        ]
    return head + [seat_block(row, mode)] + route + [f"E0/{aircraft_code(row.equipment_code)}", duration]


class QueryEngine:
    def __init__(self, repository: FlightRepository, page_size: Optional[int] = None,
                 clock: Callable[[], datetime] = get_current_datetime):
        self.repository = repository
        self.page_size = page_size or settings.PAGE_SIZE
        self.clock = clock

    def _query(self, intent: Availability) -> FlightQuery:
        travel_date = resolve_gds_date(intent.date, self.clock().date()) if intent.date else None
        if intent.date and travel_date is None:
            # 29FEB with no leap year ahead
            raise CommandSyntaxError(f"{intent.mode}15NOVBUEMAD/AAR/CY")
        return FlightQuery(
            origin=intent.origin,
            destination=intent.destination,
            airline=intent.airline,
            date=travel_date.isoformat() if travel_date else None,
        )

    def _materialize(self, intent: Availability, rows: List[FlightRow]) -> List[FlightRow]:
        rows = dedupe(rows)
        if intent.mode == "AN" and intent.booking_class:
            rows = [r for r in rows if r.seats_in(intent.booking_class) > 0]
        return rows

    async def _fetch(self, intent: Availability, after: Optional[str]) -> Tuple[List[FlightRow], Optional[str], bool]:
        page = await self.repository.find(self._query(intent), self.page_size, after)
        full = len(page.rows) == self.page_size
        return self._materialize(intent, page.rows), page.next_cursor, full

    async def search(self, intent: Availability, cursor: PaginationCursor) -> str:
        """Run a fresh AN/SN/TN search and render its first page."""
        rows, next_cursor, full = await self._fetch(intent, None)
        page = cursor.start(intent, self.page_size, rows, next_cursor, full)
        log_event("search", mode=intent.mode, origin=intent.origin, destination=intent.destination,
                  date=intent.date, rows=len(rows), full=full)
        if not page.rows and not page.next_cursor:
            return f"NO FLIGHTS FOUND FOR {intent.origin}-{intent.destination}"
        return await self.render_page(intent, page, has_previous=False)

    async def next_page(self, cursor: PaginationCursor) -> str:
        async def fetch(after: str):
            return await self._fetch(cursor.context.intent, after)

        page = await cursor.next(fetch)
        return await self.render_page(cursor.context.intent, page, suffix="NEXT PAGE", has_previous=True)

    async def previous_page(self, cursor: PaginationCursor) -> str:
        page = cursor.previous()
        has_previous = bool(cursor.context.previous_pages)
        return await self.render_page(cursor.context.intent, page, suffix="PREVIOUS PAGE", has_previous=has_previous)

    async def _destination(self, code: str) -> Tuple[str, str]:
        info = await self.repository.city_info(code)
        if info:
            return info.name, info.country_code
        return DEFAULT_DESTINATIONS.get(code, (code, "XX"))

    async def render_page(self, intent: Availability, page: PageSnapshot, suffix: str = "",
                          has_previous: bool = False) -> str:
        columns = TIMETABLE_COLUMNS if intent.mode == "TN" else SEAT_COLUMNS
        lines = render_table(
            [flight_cells(page.start_index + i, row, intent.mode) for i, row in enumerate(page.rows)],
            columns,
        )

        now = self.clock()
        city, country = await self._destination(intent.destination)
        if intent.mode == "TN":
            info = timetable_window(now)
        else:
            info = f"{days_until(intent.date, now.date())} {now_stamp(now)}"
        width = max((len(line) for line in lines), default=0)
        out = [banner(TITLES[intent.mode], intent.destination, city, country, info, width, suffix)]
        out.extend(lines)

        if page.full and page.next_cursor:
            hint = "USE MD FOR MORE RESULTS"
            if has_previous:
                hint += " OR U FOR THE PREVIOUS PAGE"
            out.append("")
            out.append(hint)
        return "\n".join(out)
