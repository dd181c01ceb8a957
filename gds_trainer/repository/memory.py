from typing import Any, Dict, List, Optional, Tuple
import json
import os

from pydantic import ValidationError

from gds_trainer.config import settings
from gds_trainer.obs.logger import log_event
from gds_trainer.repository.base import (
    AirlineInfo,
    AirportInfo,
    CityInfo,
    FlightPage,
    FlightQuery,
    FlightRepository,
)
from gds_trainer.types import FlightRow
from gds_trainer.utils.dates import to_iso_date


def _sort_key(row: FlightRow) -> Tuple[str, str]:
    return (row.departure_time, row.id)


def encode_cursor(row: FlightRow) -> str:
    return "|".join(_sort_key(row))


def decode_cursor(marker: str) -> Tuple[str, str]:
    time, _, row_id = marker.partition("|")
    return (time, row_id)


class InMemoryFlightRepository(FlightRepository):
    """Flight and reference data held in memory, loaded from a JSON seed.

    The seed is a single object with ``flights``, ``cities``, ``airports`` and
    ``airlines`` arrays. Flight rows are validated on load: dates are
    normalised to ISO, class letters upper-cased and seat counts clamped at
    zero. Rows that still fail validation are skipped and logged.

    Pagination is keyset based: rows are ordered by (departure_time, id) and
    the cursor is the key of the last row returned, so a page never depends
    on the position of rows that came before it.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None, path: Optional[str] = None):
        if data is None:
            data = self._load_json(path or settings.FLIGHTS_DATA_PATH)

        self.flights: List[FlightRow] = []
        for i, raw in enumerate(data.get("flights", [])):
            row = self._to_row(raw, i)
            if row is not None:
                self.flights.append(row)
        self.flights.sort(key=_sort_key)

        self.cities: Dict[str, CityInfo] = {}
        for c in data.get("cities", []):
            info = CityInfo(**{k: (v.upper() if isinstance(v, str) else v) for k, v in c.items()})
            self.cities[info.code] = info

        self.airports: Dict[str, AirportInfo] = {}
        for a in data.get("airports", []):
            info = AirportInfo(**{k: (v.upper() if isinstance(v, str) else v) for k, v in a.items()})
            self.airports[info.code] = info
            city = self.cities.get(info.city_code)
            if city and info.code not in city.airports:
                city.airports.append(info.code)

        self.airlines: Dict[str, AirlineInfo] = {}
        for a in data.get("airlines", []):
            info = AirlineInfo(**{k: (v.upper() if isinstance(v, str) else v) for k, v in a.items()})
            self.airlines[info.code] = info

    @staticmethod
    def _load_json(path: str) -> Dict[str, Any]:
        if not os.path.exists(path):
            log_event("flight_data_missing", level="WARNING", path=path)
            return {}
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    @staticmethod
    def _to_row(raw: Dict[str, Any], position: int) -> Optional[FlightRow]:
        rec = dict(raw)
        rec.setdefault("id", str(position + 1))
        rec["id"] = str(rec["id"])
        for field in ("departure_date", "arrival_date"):
            if rec.get(field):
                rec[field] = to_iso_date(rec[field]) or None
        try:
            return FlightRow(**rec)
        except ValidationError as e:
            log_event("flight_row_rejected", level="WARNING", row_id=rec.get("id"), error=str(e))
            return None

    def _matches(self, row: FlightRow, query: FlightQuery) -> bool:
        if row.departure_airport_code != query.origin or row.arrival_airport_code != query.destination:
            return False
        if query.airline and row.airline_code != query.airline:
            return False
        # Rows without a date are recurring schedule entries and match any day
        if query.date and row.departure_date and row.departure_date != query.date:
            return False
        return True

    async def find(self, query: FlightQuery, page_size: int, after: Optional[str] = None) -> FlightPage:
        matching = [r for r in self.flights if self._matches(r, query)]
        if after:
            marker = decode_cursor(after)
            matching = [r for r in matching if _sort_key(r) > marker]
        rows = matching[:page_size]
        next_cursor = encode_cursor(rows[-1]) if rows and len(rows) == page_size else None
        return FlightPage(rows=[r.model_copy(deep=True) for r in rows], next_cursor=next_cursor)

    async def city_info(self, code: str) -> Optional[CityInfo]:
        code = code.upper()
        if code in self.cities:
            return self.cities[code]
        airport = self.airports.get(code)
        if airport:
            return self.cities.get(airport.city_code)
        return None

    async def airport_info(self, code: str) -> Optional[AirportInfo]:
        return self.airports.get(code.upper())

    async def find_cities(self, prefix: str, limit: int = 5) -> List[CityInfo]:
        needle = prefix.upper().replace(" ", "")
        out = [c for c in self.cities.values() if c.name.replace(" ", "").startswith(needle)]
        return sorted(out, key=lambda c: c.name)[:limit]

    async def decode_code(self, code: str) -> Optional[Dict[str, Any]]:
        code = code.upper()
        if code in self.cities:
            return {"kind": "city", "city": self.cities[code]}
        airport = self.airports.get(code)
        if airport:
            return {"kind": "airport", "airport": airport, "city": self.cities.get(airport.city_code)}
        return None

    async def find_airlines(self, prefix: str, limit: int = 5) -> List[AirlineInfo]:
        needle = prefix.upper().replace(" ", "")
        out = [a for a in self.airlines.values() if a.name.replace(" ", "").startswith(needle)]
        return sorted(out, key=lambda a: a.name)[:limit]
