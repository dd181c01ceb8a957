"""Text views of a PNR.

Every element gets one number, counted in a fixed order across the record:
passengers, segments, phone contacts, email contacts, OSI, SSR, remarks,
ticketing. The full record appends the received-from line. XE resolves
element numbers with ``element_map`` so what the trainee reads is exactly
what gets deleted.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from gds_trainer.config import settings
from gds_trainer.formatters.terminal import Column, aircraft_code, render_table
from gds_trainer.types import PNR, Passenger, PassengerType, Segment, SSRElement, Ticketing
from gds_trainer.utils.dates import MONTHS, WEEKDAYS


END_MARKER = "*TRN*\n>"

# List fields numbered in this order; ticketing follows as one element
ELEMENT_KINDS = (
    "passengers",
    "segments",
    "contacts",
    "email_contacts",
    "osi_elements",
    "ssr_elements",
    "remarks",
)

SEGMENT_COLUMNS = [
    Column(1),           # element number
    Column(2),           # airline
    Column(4, "right"),  # flight number
    Column(1),           # class
    Column(5),           # date
    Column(1),           # day of week
    Column(6),           # city pair
    Column(3),           # status + quantity
    Column(4),           # departure
    Column(4),           # arrival
    Column(1),           # E
    Column(3),           # equipment
]


def element_map(pnr: PNR) -> List[Tuple[str, int]]:
    """Element number n (1-based) is ``element_map(pnr)[n - 1]``."""
    out: List[Tuple[str, int]] = []
    for kind in ELEMENT_KINDS:
        out.extend((kind, i) for i in range(len(getattr(pnr, kind))))
    if pnr.ticketing is not None:
        out.append(("ticketing", 0))
    return out


def passenger_text(p: Passenger) -> str:
    text = f"{p.last_name}/{p.first_name} {p.title}"
    if p.type == PassengerType.CHILD:
        text += f"(CHD/{p.date_of_birth or ''})"
    elif p.type == PassengerType.INFANT and p.infant:
        text += f"(INF{p.infant.last_name}/{p.infant.first_name}/{p.infant.date_of_birth or ''})"
    return text


def segment_cells(number: int, s: Segment) -> List[str]:
    return [
        str(number),
        s.airline_code,
        s.flight_number,
        s.class_code,
        s.date,
        s.day_of_week,
        f"{s.origin}{s.destination}",
        f"{s.booking_status.value}{s.quantity}",
        s.departure_time.replace(":", ""),
        s.arrival_time.replace(":", ""),
        "E",
        aircraft_code(s.equipment),
    ]


def ssr_text(pnr: PNR, ssr: SSRElement) -> str:
    text = f"SSR {ssr.code} {ssr.airline_code} {ssr.status}"
    if ssr.segment_index is not None:
        text += f" /S{len(pnr.passengers) + ssr.segment_index + 1}"
    if ssr.passenger_number:
        text += f"/P{ssr.passenger_number}"
    return text


def ticketing_text(tk: Ticketing, office_id: Optional[str] = None) -> str:
    office = tk.office_id or office_id or settings.OFFICE_ID
    if tk.kind == "OK":
        return f"TK OK/{office}"
    return f"TK {tk.kind}{tk.date}/{tk.time}/{office}"


def element_lines(pnr: PNR, office_id: Optional[str] = None) -> List[str]:
    """Numbered element lines shared by both views."""
    lines: List[str] = []
    n = 1
    for p in pnr.passengers:
        lines.append(f"{n}.{passenger_text(p)}")
        n += 1

    if pnr.segments:
        lines.extend(render_table(
            [segment_cells(n + i, s) for i, s in enumerate(pnr.segments)],
            SEGMENT_COLUMNS,
        ))
        n += len(pnr.segments)

    texts: List[str] = []
    texts.extend(f"AP {c.city} {c.phone}-{c.type}" for c in pnr.contacts)
    texts.extend(f"APE {e.email}" for e in pnr.email_contacts)
    for osi in pnr.osi_elements:
        texts.append(f"OSI {osi.airline_code} {osi.message}" + (f"/P{osi.passenger_number}" if osi.passenger_number else ""))
    texts.extend(ssr_text(pnr, s) for s in pnr.ssr_elements)
    texts.extend(f"{r.kind} {r.text}" for r in pnr.remarks)
    if pnr.ticketing is not None:
        texts.append(ticketing_text(pnr.ticketing, office_id))

    for text in texts:
        lines.append(f"{n} {text}")
        n += 1
    return lines


def render_short(pnr: PNR, office_id: Optional[str] = None) -> str:
    office = office_id or settings.OFFICE_ID
    out = [f"RP/{office}/{pnr.received_from or ''}"]
    out.extend(element_lines(pnr, office))
    out.append(END_MARKER)
    return "\n".join(out)


def render_full(pnr: PNR, office_id: Optional[str] = None) -> str:
    """Record header with issue stamp and locator, then every element and RF."""
    office = office_id or settings.OFFICE_ID
    stamp = (pnr.finalized_at or pnr.created_at or datetime.now(timezone.utc)).astimezone(timezone.utc)
    header = (
        f"RP/{office}/{pnr.received_from or 'AGENT'} "
        f"FF/{WEEKDAYS[stamp.weekday()]} {stamp.day:02d}{MONTHS[stamp.month - 1]}/{stamp:%H%M}Z "
        f"{pnr.locator}"
    )
    lines = element_lines(pnr, office)
    out = ["---RLR---", header]
    out.extend(lines)
    if pnr.received_from:
        out.append(f"{len(element_map(pnr)) + 1} RF {pnr.received_from}")
    out.append(END_MARKER)
    return "\n".join(out)
