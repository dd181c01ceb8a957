"""Grammar for terminal commands.

Each command word owns one anchored pattern. A raw string either matches
its word's pattern end to end and yields exactly one intent model, or the
parser raises ``CommandSyntaxError`` naming an example of the expected form.
Unrecognised words raise ``UnknownCommandError``.
"""

from typing import Callable, List, Literal, Optional, Tuple, Union
import calendar
import re

from pydantic import BaseModel, Field

from gds_trainer.errors import CommandSyntaxError, UnknownCommandError
from gds_trainer.utils.dates import MONTHS, is_valid_month


class Availability(BaseModel):
    family: Literal["availability"] = "availability"
    mode: Literal["AN", "SN", "TN"]
    date: Optional[str] = None  # DDMMM
    origin: str
    destination: str
    airline: Optional[str] = None
    booking_class: Optional[str] = None

    @property
    def options(self) -> str:
        out = ""
        if self.airline:
            out += f"/A{self.airline}"
        if self.booking_class:
            out += f"/C{self.booking_class}"
        return out


class Navigate(BaseModel):
    family: Literal["navigate"] = "navigate"
    direction: Literal["next", "previous"]


class SellSegment(BaseModel):
    family: Literal["sell"] = "sell"
    quantity: int = Field(ge=1)
    class_code: str
    line_number: int = Field(ge=1)


class AddName(BaseModel):
    family: Literal["name"] = "name"
    quantity: int = Field(ge=1)
    last_name: str
    first_name: str
    title: Optional[str] = None
    subtype: Optional[Literal["CHD", "INF"]] = None
    subtype_info: Optional[str] = None


class AddContact(BaseModel):
    family: Literal["contact"] = "contact"
    city: str
    phone: str
    type: str = "H"


class AddEmailContact(BaseModel):
    family: Literal["email"] = "email"
    email: str


class ReceivedFrom(BaseModel):
    family: Literal["received_from"] = "received_from"
    name: str


class Ticketing(BaseModel):
    family: Literal["ticketing"] = "ticketing"
    kind: Literal["OK", "TL", "XL"]
    date: Optional[str] = None
    time: Optional[str] = None


class EndTransaction(BaseModel):
    family: Literal["end_transaction"] = "end_transaction"
    keep_open: bool


class RetrievePNR(BaseModel):
    family: Literal["retrieve"] = "retrieve"
    locator: str


class CancelPNR(BaseModel):
    family: Literal["cancel"] = "cancel"


class DeleteElements(BaseModel):
    family: Literal["delete"] = "delete"
    numbers: List[int]


class AddOSI(BaseModel):
    family: Literal["osi"] = "osi"
    airline: str
    message: str
    passenger_number: Optional[int] = None


class AddSSR(BaseModel):
    family: Literal["ssr"] = "ssr"
    code: str
    passenger_number: Optional[int] = None


class AddRemark(BaseModel):
    family: Literal["remark"] = "remark"
    text: str
    kind: Literal["RM", "RC", "RIR"] = "RM"  # general, confidential, itinerary


class EncodeCity(BaseModel):
    family: Literal["encode_city"] = "encode_city"
    query: str


class DecodeCode(BaseModel):
    family: Literal["decode_code"] = "decode_code"
    code: str


class EncodeAirline(BaseModel):
    family: Literal["encode_airline"] = "encode_airline"
    query: str


class Help(BaseModel):
    family: Literal["help"] = "help"
    topic: Optional[str] = None


CommandIntent = Union[
    Availability, Navigate, SellSegment, AddName, AddContact, AddEmailContact,
    ReceivedFrom, Ticketing, EndTransaction, RetrievePNR, CancelPNR,
    DeleteElements, AddOSI, AddSSR, AddRemark, EncodeCity, DecodeCode,
    EncodeAirline, Help,
]


TITLES = ("MRS", "MSTR", "MISS", "MR", "MS", "DR")

_AVAILABILITY_RE = re.compile(
    r"^(?P<mode>AN|SN|TN)"
    r"(?:(?P<day>\d{1,2})(?P<month>[A-Z]{3}))?"
    r"(?P<origin>[A-Z]{3})(?P<destination>[A-Z]{3})"
    r"(?P<options>(?:/[A-Z0-9]+)*)$"
)
_OPTION_RE = re.compile(r"^(?:A(?P<airline>[A-Z0-9]{2})|C(?P<klass>[A-Z]))$")
_SELL_RE = re.compile(r"^SS(?P<quantity>\d+)(?P<klass>[A-Z])(?P<line>\d+)$")
_NAME_RE = re.compile(
    r"^NM(?P<quantity>\d+)(?P<last>[A-Z]+)/(?P<first>[A-Z][A-Z ]*?)"
    r"(?:\s+(?P<title>" + "|".join(TITLES) + r"))?"
    r"(?:\s*\((?P<subtype>CHD|INF)(?:/?(?P<info>[^)]+))?\))?$"
)
_CONTACT_RE = re.compile(r"^AP\s+(?P<city>[A-Z]{3})\s+(?P<phone>\d[\d-]*?)(?:-(?P<type>[A-Z]))?$")
_EMAIL_RE = re.compile(r"^APE[\s-]?(?P<email>[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,})$")
_RECEIVED_RE = re.compile(r"^RF\s*(?P<name>\S.*)$")
_TICKETING_RE = re.compile(
    r"^TK(?:(?P<ok>OK)|(?P<kind>TL|XL)(?P<day>\d{1,2})(?P<month>[A-Z]{3})/(?P<time>\d{2,4}))$"
)
_RETRIEVE_RE = re.compile(r"^RT\s*(?P<locator>[A-Z0-9]{6})$")
_DELETE_RE = re.compile(r"^XE(?P<first>\d+)(?:(?P<sep>[-,])(?P<second>\d+))?$")
_OSI_RE = re.compile(r"^OS\s+(?P<airline>[A-Z0-9]{2})\s+(?P<message>.+?)(?:\s*/P(?P<pax>\d+))?$")
_SSR_RE = re.compile(r"^SR(?P<code>[A-Z]{4})(?:/P(?P<pax>\d+))?$")
_REMARK_RE = re.compile(r"^(?P<kind>RIR|RM|RC)\s*(?P<text>\S.*)$")
_ENCODE_CITY_RE = re.compile(r"^DAN\s*(?P<query>[A-Z][A-Z .'-]*)$")
_DECODE_RE = re.compile(r"^DAC\s*(?P<code>[A-Z]{3})$")
_ENCODE_AIRLINE_RE = re.compile(r"^DNA\s*(?P<query>[A-Z0-9][A-Z0-9 .'-]*)$")
_HELP_RE = re.compile(r"^(?:HELP|HE)\s*(?P<topic>[A-Z]*)$")


def _reassemble_date(day: Optional[str], month: Optional[str], example: str) -> Optional[str]:
    if not day:
        return None
    if not is_valid_month(month):
        raise CommandSyntaxError(example)
    # 2000 is a leap year, so 29FEB is the only day that may still not resolve
    if not 1 <= int(day) <= calendar.monthrange(2000, MONTHS.index(month) + 1)[1]:
        raise CommandSyntaxError(example)
    return f"{int(day):02d}{month}"


def _availability(cmd: str) -> Availability:
    example = f"{cmd[:2]}15NOVBUEMAD/AAR/CY"
    m = _AVAILABILITY_RE.match(cmd)
    if not m:
        raise CommandSyntaxError(example)
    date = _reassemble_date(m.group("day"), m.group("month"), example)

    airline = klass = None
    for block in m.group("options").split("/")[1:]:
        om = _OPTION_RE.match(block)
        if not om:
            raise CommandSyntaxError(example)
        if om.group("airline"):
            if airline:
                raise CommandSyntaxError(example)
            airline = om.group("airline")
        else:
            if klass:
                raise CommandSyntaxError(example)
            klass = om.group("klass")

    return Availability(
        mode=m.group("mode"),
        date=date,
        origin=m.group("origin"),
        destination=m.group("destination"),
        airline=airline,
        booking_class=klass,
    )


def _navigate(cmd: str) -> Navigate:
    if cmd in ("MD", "M"):
        return Navigate(direction="next")
    if cmd == "U":
        return Navigate(direction="previous")
    raise CommandSyntaxError("MD")


def _sell(cmd: str) -> SellSegment:
    m = _SELL_RE.match(cmd)
    if not m or int(m.group("quantity")) < 1 or int(m.group("line")) < 1:
        raise CommandSyntaxError("SS1Y1")
    return SellSegment(
        quantity=int(m.group("quantity")),
        class_code=m.group("klass"),
        line_number=int(m.group("line")),
    )


def _name(cmd: str) -> AddName:
    m = _NAME_RE.match(cmd)
    if not m or int(m.group("quantity")) < 1:
        raise CommandSyntaxError("NM1GARCIA/JUAN MR")
    return AddName(
        quantity=int(m.group("quantity")),
        last_name=m.group("last"),
        first_name=m.group("first").strip(),
        title=m.group("title"),
        subtype=m.group("subtype"),
        subtype_info=(m.group("info") or "").strip() or None,
    )


def _contact(cmd: str) -> AddContact:
    m = _CONTACT_RE.match(cmd)
    if not m:
        raise CommandSyntaxError("AP BUE 12345678-M")
    return AddContact(city=m.group("city"), phone=m.group("phone"), type=m.group("type") or "H")


def _email(cmd: str) -> AddEmailContact:
    m = _EMAIL_RE.match(cmd)
    if not m:
        raise CommandSyntaxError("APE-JUAN.GARCIA@EMAIL.COM")
    return AddEmailContact(email=m.group("email"))


def _received_from(cmd: str) -> ReceivedFrom:
    m = _RECEIVED_RE.match(cmd)
    if not m:
        raise CommandSyntaxError("RF JUAN GARCIA")
    return ReceivedFrom(name=m.group("name").strip())


def _ticketing(cmd: str) -> Ticketing:
    example = "TKOK, TKTL15NOV/1600, TKXL16NOV/1600"
    m = _TICKETING_RE.match(cmd)
    if not m:
        raise CommandSyntaxError(example)
    if m.group("ok"):
        return Ticketing(kind="OK")
    date = _reassemble_date(m.group("day"), m.group("month"), example)
    return Ticketing(kind=m.group("kind"), date=date, time=m.group("time").zfill(4))


def _end_transaction(cmd: str) -> EndTransaction:
    if cmd == "ET":
        return EndTransaction(keep_open=False)
    if cmd == "ER":
        return EndTransaction(keep_open=True)
    raise CommandSyntaxError("ET or ER")


def _retrieve(cmd: str) -> RetrievePNR:
    m = _RETRIEVE_RE.match(cmd)
    if not m:
        raise CommandSyntaxError("RTABCDEF")
    return RetrievePNR(locator=m.group("locator"))


def _cancel(cmd: str) -> CancelPNR:
    if cmd != "XI":
        raise CommandSyntaxError("XI")
    return CancelPNR()


def _delete(cmd: str) -> DeleteElements:
    example = "XE3, XE3,6, XE3-6"
    m = _DELETE_RE.match(cmd)
    if not m:
        raise CommandSyntaxError(example)
    first = int(m.group("first"))
    if not m.group("second"):
        return DeleteElements(numbers=[first])
    second = int(m.group("second"))
    if m.group("sep") == ",":
        numbers = sorted({first, second})
    else:
        if second < first:
            raise CommandSyntaxError(example)
        numbers = list(range(first, second + 1))
    return DeleteElements(numbers=numbers)


def _osi(cmd: str) -> AddOSI:
    m = _OSI_RE.match(cmd)
    if not m:
        raise CommandSyntaxError("OS UX PAX VIP WAGNER /P1")
    pax = m.group("pax")
    return AddOSI(
        airline=m.group("airline"),
        message=m.group("message").strip(),
        passenger_number=int(pax) if pax else None,
    )


def _ssr(cmd: str) -> AddSSR:
    m = _SSR_RE.match(cmd)
    if not m:
        raise CommandSyntaxError("SRVGML/P2")
    pax = m.group("pax")
    return AddSSR(code=m.group("code"), passenger_number=int(pax) if pax else None)


def _remark(cmd: str) -> AddRemark:
    m = _REMARK_RE.match(cmd)
    if not m:
        kind = "RIR" if cmd.startswith("RIR") else cmd[:2]
        raise CommandSyntaxError(f"{kind} TEXT OF THE REMARK")
    return AddRemark(kind=m.group("kind"), text=m.group("text").strip())


def _encode_city(cmd: str) -> EncodeCity:
    m = _ENCODE_CITY_RE.match(cmd)
    if not m:
        raise CommandSyntaxError("DANMADRID")
    return EncodeCity(query=m.group("query").strip())


def _decode(cmd: str) -> DecodeCode:
    m = _DECODE_RE.match(cmd)
    if not m:
        raise CommandSyntaxError("DACMAD")
    return DecodeCode(code=m.group("code"))


def _encode_airline(cmd: str) -> EncodeAirline:
    m = _ENCODE_AIRLINE_RE.match(cmd)
    if not m:
        raise CommandSyntaxError("DNAAEROLINEAS")
    return EncodeAirline(query=m.group("query").strip())


def _help(cmd: str) -> Help:
    m = _HELP_RE.match(cmd)
    if not m:
        raise CommandSyntaxError("HE or HEAN")
    return Help(topic=m.group("topic") or None)


# Longest words first so APE wins over AP and HELP over HE.
# Single-letter words only match the whole command.
RULES: List[Tuple[str, Callable[[str], CommandIntent]]] = [
    ("HELP", _help),
    ("APE", _email),
    ("DAN", _encode_city),
    ("DAC", _decode),
    ("DNA", _encode_airline),
    ("AN", _availability),
    ("SN", _availability),
    ("TN", _availability),
    ("MD", _navigate),
    ("SS", _sell),
    ("NM", _name),
    ("AP", _contact),
    ("RF", _received_from),
    ("RM", _remark),
    ("RIR", _remark),
    ("RC", _remark),
    ("RT", _retrieve),
    ("TK", _ticketing),
    ("ET", _end_transaction),
    ("ER", _end_transaction),
    ("XE", _delete),
    ("XI", _cancel),
    ("OS", _osi),
    ("SR", _ssr),
    ("HE", _help),
]
_SINGLE_LETTER = {"M": _navigate, "U": _navigate}


def parse(raw: str) -> CommandIntent:
    """Parse one raw terminal command into its intent."""
    cmd = (raw or "").strip().upper()
    if not cmd:
        raise CommandSyntaxError("AN15NOVBUEMAD")

    if cmd in _SINGLE_LETTER:
        return _SINGLE_LETTER[cmd](cmd)
    for word, handler in RULES:
        if cmd.startswith(word):
            return handler(cmd)
    raise UnknownCommandError(cmd.split()[0])


def render_intent(intent: Availability) -> str:
    """Canonical command string for an availability-family intent."""
    return f"{intent.mode}{intent.date or ''}{intent.origin}{intent.destination}{intent.options}"


def command_family(intent: CommandIntent) -> str:
    """Metric/log label for an intent; availability splits by display mode."""
    if isinstance(intent, Availability):
        return intent.mode.lower()
    return intent.family
