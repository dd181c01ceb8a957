"""Collaborator contracts consumed by the interpreter.

The interpreter only talks to flight data and persisted PNRs through these
two interfaces. Both are async: they are the only operations a command
awaits on.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from gds_trainer.types import PNR, FlightRow


class FlightQuery(BaseModel):
    """Conjunctive equality filters; results always sorted by departure time."""

    origin: str
    destination: str
    airline: Optional[str] = None
    date: Optional[str] = None  # ISO YYYY-MM-DD, matched against departure_date


class FlightPage(BaseModel):
    rows: List[FlightRow] = Field(default_factory=list)
    next_cursor: Optional[str] = None


class CityInfo(BaseModel):
    code: str
    name: str
    country_code: str
    country_name: Optional[str] = None
    airports: List[str] = Field(default_factory=list)


class AirportInfo(BaseModel):
    code: str
    name: str
    city_code: str
    country_code: Optional[str] = None


class AirlineInfo(BaseModel):
    code: str
    name: str
    country: Optional[str] = None


class FlightRepository(ABC):
    @abstractmethod
    async def find(self, query: FlightQuery, page_size: int, after: Optional[str] = None) -> FlightPage:
        """Return up to ``page_size`` rows strictly after the ``after`` marker."""

    @abstractmethod
    async def city_info(self, code: str) -> Optional[CityInfo]:
        """City for a city or airport code, used by the display banners."""

    @abstractmethod
    async def airport_info(self, code: str) -> Optional[AirportInfo]:
        ...

    @abstractmethod
    async def find_cities(self, prefix: str, limit: int = 5) -> List[CityInfo]:
        ...

    @abstractmethod
    async def decode_code(self, code: str) -> Optional[Dict[str, Any]]:
        """Decode a 3-letter code: a city first, then an airport.

        Returns ``{"kind": "city", "city": CityInfo}`` or
        ``{"kind": "airport", "airport": AirportInfo, "city": CityInfo | None}``.
        """

    @abstractmethod
    async def find_airlines(self, prefix: str, limit: int = 5) -> List[AirlineInfo]:
        ...


class PNRStore(ABC):
    @abstractmethod
    async def get_by_locator(self, locator: str) -> Optional[PNR]:
        ...

    @abstractmethod
    async def save(self, pnr: PNR) -> str:
        """Persist a new record and return its store id."""

    @abstractmethod
    async def update(self, pnr_id: str, patch: Dict[str, Any]) -> None:
        """Apply a partial update (field name -> JSON-compatible value)."""
