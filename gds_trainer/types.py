from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Literal

from pydantic import BaseModel, Field, field_validator


BOOKING_CLASS_LETTERS = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ")
PLACEHOLDER_PREFIX = "TEMP"


class FlightRow(BaseModel):
    """One row of the flight reference store, as returned by a repository."""

    id: str
    airline_code: str
    flight_number: str
    departure_airport_code: str
    departure_terminal: Optional[str] = None
    arrival_airport_code: str
    arrival_terminal: Optional[str] = None
    departure_date: Optional[str] = None  # ISO YYYY-MM-DD
    departure_time: str                   # HH:MM
    arrival_date: Optional[str] = None
    arrival_time: str
    duration_hours: Optional[float] = None
    equipment_code: Optional[str] = None
    class_availability: Dict[str, int] = Field(default_factory=dict)
    days_of_operation: Optional[str] = None  # e.g. "1357" or "D" for daily
    valid_from: Optional[str] = None         # DDMMMYY
    valid_to: Optional[str] = None

    @field_validator("class_availability")
    @classmethod
    def _check_classes(cls, value: Dict[str, int]) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for letter, seats in value.items():
            code = str(letter).strip().upper()
            if code not in BOOKING_CLASS_LETTERS:
                raise ValueError(f"unknown booking class {letter!r}")
            out[code] = max(int(seats), 0)
        return out

    def seats_in(self, class_code: str) -> int:
        return self.class_availability.get(class_code.upper(), 0)

    def identity(self) -> tuple:
        # Same physical flight: the store may hold redundant copies
        return (self.airline_code, self.flight_number, self.departure_date, self.departure_time)


class PNRStatus(str, Enum):
    EMPTY = "EMPTY"
    IN_PROGRESS = "IN_PROGRESS"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class BookingStatus(str, Enum):
    REQUESTED = "DK"
    CONFIRMED = "HK"


class PassengerType(str, Enum):
    ADULT = "ADT"
    CHILD = "CHD"
    INFANT = "INF"


class Segment(BaseModel):
    airline_code: str
    flight_number: str
    class_code: str
    origin: str
    destination: str
    date: str            # DDMMM
    day_of_week: str     # 1=Monday .. 7=Sunday
    departure_time: str
    arrival_time: str
    equipment: str = "---"
    booking_status: BookingStatus = BookingStatus.REQUESTED
    quantity: int = 1


class Infant(BaseModel):
    last_name: str
    first_name: str = "INFANT"
    date_of_birth: Optional[str] = None


class Passenger(BaseModel):
    last_name: str
    first_name: str
    title: str = "MR"
    type: PassengerType = PassengerType.ADULT
    date_of_birth: Optional[str] = None  # children only
    infant: Optional[Infant] = None

    def sort_key(self) -> tuple:
        return (self.last_name, self.first_name)


class Contact(BaseModel):
    city: str
    phone: str
    type: str = "H"


class EmailContact(BaseModel):
    email: str


class OSIElement(BaseModel):
    airline_code: str
    message: str
    passenger_number: Optional[int] = None


class SSRElement(BaseModel):
    code: str
    airline_code: str
    status: str = "HK1"
    passenger_number: Optional[int] = None
    segment_index: Optional[int] = None  # 0-based position in PNR.segments


class Remark(BaseModel):
    text: str
    kind: Literal["RM", "RC", "RIR"] = "RM"


class Ticketing(BaseModel):
    kind: Literal["TL", "OK", "XL"] = "TL"
    date: Optional[str] = None        # DDMMM
    time: Optional[str] = None        # HHMM
    office_id: Optional[str] = None
    issue_date: Optional[str] = None  # DDMMM, stamped on finalize


class HistoryEntry(BaseModel):
    command: str
    result: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PNR(BaseModel):
    id: Optional[str] = None  # PNR store id once persisted
    locator: str
    status: PNRStatus = PNRStatus.IN_PROGRESS
    segments: List[Segment] = Field(default_factory=list)
    passengers: List[Passenger] = Field(default_factory=list)
    contacts: List[Contact] = Field(default_factory=list)
    email_contacts: List[EmailContact] = Field(default_factory=list)
    osi_elements: List[OSIElement] = Field(default_factory=list)
    ssr_elements: List[SSRElement] = Field(default_factory=list)
    remarks: List[Remark] = Field(default_factory=list)
    received_from: Optional[str] = None
    ticketing: Optional[Ticketing] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finalized_at: Optional[datetime] = None
    history: List[HistoryEntry] = Field(default_factory=list)

    @property
    def has_placeholder_locator(self) -> bool:
        return not self.locator or self.locator.startswith(PLACEHOLDER_PREFIX)

    def seats_sold(self) -> int:
        return sum(s.quantity for s in self.segments)
