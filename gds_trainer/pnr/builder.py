"""The booking-in-progress state machine.

States: no active PNR (EMPTY) -> IN_PROGRESS -> CONFIRMED | CANCELLED.
RT loads a CONFIRMED record back into the active slot for further edits.
XI on a saved record only asks for confirmation; an RF as the very next
command commits the cancellation.

Every handler works on a deep copy of the active PNR and returns it with
the response text. ``PNRBuilder.handle`` only swaps the copy in after the
handler returned, so a precondition failure or a store error never leaves
a half-applied command behind.
"""

from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

from gds_trainer.config import settings
from gds_trainer.errors import PreconditionError
from gds_trainer.infrastructure.resilience import CircuitBreaker
from gds_trainer.obs.logger import log_event
from gds_trainer.parse import commands as cmd
from gds_trainer.pnr.locator import generate_locator, placeholder_locator
from gds_trainer.pnr.render import ELEMENT_KINDS, element_map, render_full, render_short
from gds_trainer.query.pagination import PaginationCursor
from gds_trainer.repository.base import PNRStore
from gds_trainer.types import (
    PNR,
    BookingStatus,
    Contact,
    EmailContact,
    HistoryEntry,
    Infant,
    OSIElement,
    Passenger,
    PassengerType,
    PNRStatus,
    Remark,
    Segment,
    SSRElement,
    Ticketing,
)
from gds_trainer.utils.dates import (
    day_of_week_number,
    format_gds_date,
    get_current_datetime,
    iso_to_gds,
    resolve_gds_date,
)


NO_ACTIVE_PNR = "NO PNR IN PROGRESS - SELL A SEGMENT WITH SS FIRST"
MAX_OSI_LENGTH = 68
MAX_OSI_ELEMENTS = 127

VALID_SSR_CODES: Dict[str, str] = {
    "BLND": "Blind passenger",
    "BSCT": "Bassinet/carry cot/baby basket",
    "BULK": "Bulky baggage",
    "CBBG": "Cabin baggage",
    "CHML": "Child meal",
    "CKIN": "Information for airport personnel",
    "DBML": "Diabetic meal",
    "DEAF": "Deaf passenger",
    "DEPA": "Deportee accompanied by an escort",
    "DEPU": "Deportee, unaccompanied",
    "EXST": "Extra seat",
    "FPML": "Fruit platter",
    "FQTV": "Frequent flyer mileage accrual",
    "FRAG": "Fragile baggage",
    "GFML": "Gluten free meal",
    "HNML": "Hindu meal",
    "INFT": "Infant not occupying a seat",
    "KSML": "Kosher meal",
    "LANG": "Languages spoken",
    "LCML": "Low calorie meal",
    "LSML": "Low sodium meal",
    "MAAS": "Meet and assist",
    "MEDA": "Medical case",
    "MOML": "Moslem meal",
    "NLML": "Non lactose meal",
    "OTHS": "Other service",
    "PETC": "Animal in cabin",
    "SEAT": "Pre-reserved seat",
    "SFML": "Sea food meal",
    "SPEQ": "Sports equipment",
    "SPML": "Special meal",
    "STCR": "Stretcher passenger",
    "UMNR": "Unaccompanied minor",
    "VGML": "Vegetarian meal (non-dairy)",
    "VLML": "Vegetarian meal (lacto-ovo)",
    "WCHC": "Wheelchair - all the way to seat",
    "WCHR": "Wheelchair - for ramp",
    "WCHS": "Wheelchair - up and down steps",
    "XBAG": "Excess baggage",
}

# handler result: (new active PNR or None to clear the slot, response text, history summary)
Outcome = Tuple[Optional[PNR], str, str]


class PNRBuilder:
    def __init__(self, store: PNRStore, breaker: Optional[CircuitBreaker] = None,
                 office_id: Optional[str] = None, clock: Callable[[], datetime] = get_current_datetime):
        self.store = store
        self.breaker = breaker or CircuitBreaker("pnr_store")
        self.office_id = office_id or settings.OFFICE_ID
        self.clock = clock
        self.active: Optional[PNR] = None
        # XI on a saved record waits for RF on the very next command
        self.pending_cancel = False
        self._cancel_armed = False

    @property
    def status(self) -> PNRStatus:
        return self.active.status if self.active else PNRStatus.EMPTY

    def begin_command(self) -> None:
        """Called once per terminal command, before it is parsed."""
        self._cancel_armed, self.pending_cancel = self.pending_cancel, False

    async def handle(self, intent, raw: str, cursor: PaginationCursor) -> str:
        handlers: Dict[type, Callable[..., Awaitable[Outcome]]] = {
            cmd.SellSegment: lambda i: self.sell(i, cursor),
            cmd.AddName: self.add_name,
            cmd.AddContact: self.add_contact,
            cmd.AddEmailContact: self.add_email,
            cmd.ReceivedFrom: self.received_from,
            cmd.Ticketing: self.ticketing,
            cmd.EndTransaction: self.end_transaction,
            cmd.RetrievePNR: self.retrieve,
            cmd.CancelPNR: self.cancel,
            cmd.DeleteElements: self.delete_elements,
            cmd.AddOSI: self.add_osi,
            cmd.AddSSR: self.add_ssr,
            cmd.AddRemark: self.add_remark,
        }
        handler = handlers[type(intent)]
        if self._cancel_armed and isinstance(intent, cmd.ReceivedFrom):
            handler = self.confirm_cancel
        self._cancel_armed = False
        new_active, text, summary = await handler(intent)
        if new_active is not None and summary:
            new_active.history.append(HistoryEntry(command=raw, result=summary))
        self.active = new_active
        return text

    # helpers

    def _draft(self) -> PNR:
        if self.active is None:
            raise PreconditionError(NO_ACTIVE_PNR)
        draft = self.active.model_copy(deep=True)
        # Any change to a record kept open by ER needs another ET/ER
        if draft.status == PNRStatus.CONFIRMED:
            draft.status = PNRStatus.IN_PROGRESS
        return draft

    def _short(self, pnr: PNR) -> str:
        return render_short(pnr, self.office_id)

    async def _store_call(self, func, *args):
        return await self.breaker.async_call(func, *args)

    @staticmethod
    def _require_passenger_number(pnr: PNR, number: Optional[int]) -> None:
        if number is not None and not 1 <= number <= len(pnr.passengers):
            raise PreconditionError(f"PASSENGER {number} DOES NOT EXIST IN THE PNR")

    @staticmethod
    def _require_names_and_segments(pnr: PNR, command: str) -> None:
        if not pnr.passengers:
            raise PreconditionError(f"ADD AT LEAST ONE PASSENGER (NM) BEFORE USING {command}")
        if not pnr.segments:
            raise PreconditionError(f"SELL AT LEAST ONE SEGMENT (SS) BEFORE USING {command}")

    # transitions

    async def sell(self, intent: cmd.SellSegment, cursor: PaginationCursor) -> Outcome:
        row = cursor.row_at(intent.line_number)
        klass = intent.class_code
        seats = row.seats_in(klass)
        if seats <= 0:
            raise PreconditionError(f"CLASS {klass} NOT AVAILABLE ON SELECTED FLIGHT")
        if intent.quantity > seats:
            raise PreconditionError(f"ONLY {seats} SEAT(S) AVAILABLE IN CLASS {klass}")

        today = self.clock().date()
        token = cursor.context.intent.date if cursor.context else None
        date_token = token or iso_to_gds(row.departure_date) or ""
        travel_date = resolve_gds_date(date_token, today) if date_token else None

        if self.active is None:
            draft = PNR(locator=placeholder_locator(), status=PNRStatus.IN_PROGRESS)
            log_event("pnr_started", locator=draft.locator)
        else:
            draft = self._draft()

        draft.segments.append(Segment(
            airline_code=row.airline_code,
            flight_number=row.flight_number,
            class_code=klass,
            origin=row.departure_airport_code,
            destination=row.arrival_airport_code,
            date=date_token,
            day_of_week=day_of_week_number(travel_date) if travel_date else "",
            departure_time=row.departure_time,
            arrival_time=row.arrival_time,
            equipment=row.equipment_code or "---",
            booking_status=BookingStatus.REQUESTED,
            quantity=intent.quantity,
        ))
        summary = f"SEGMENT {row.airline_code} {row.flight_number} CLASS {klass} SOLD"
        return draft, self._short(draft), summary

    async def add_name(self, intent: cmd.AddName) -> Outcome:
        draft = self._draft()
        sold = draft.seats_sold()
        named = len(draft.passengers)
        if named + intent.quantity > sold:
            raise PreconditionError(
                f"CANNOT ADD {intent.quantity} PASSENGER(S) - ONLY {sold} SEAT(S) SOLD "
                f"AND {named} PASSENGER(S) ALREADY IN PNR"
            )

        for _ in range(intent.quantity):
            p = Passenger(
                last_name=intent.last_name,
                first_name=intent.first_name,
                title=intent.title or "MR",
                type=PassengerType(intent.subtype) if intent.subtype else PassengerType.ADULT,
            )
            if intent.subtype == "CHD":
                p.date_of_birth = intent.subtype_info
            elif intent.subtype == "INF" and intent.subtype_info:
                parts = intent.subtype_info.split("/")
                p.infant = Infant(
                    last_name=parts[0] or intent.last_name,
                    first_name=parts[1] if len(parts) > 1 and parts[1] else "INFANT",
                    date_of_birth=parts[2] if len(parts) > 2 else None,
                )
            draft.passengers.append(p)

        before = list(draft.passengers)
        draft.passengers.sort(key=Passenger.sort_key)
        # OSI/SSR references stay with the same passenger after the re-sort
        position = {id(p): i + 1 for i, p in enumerate(draft.passengers)}
        for element in [*draft.osi_elements, *draft.ssr_elements]:
            if element.passenger_number:
                element.passenger_number = position[id(before[element.passenger_number - 1])]
        return draft, self._short(draft), f"{intent.quantity} PASSENGER(S) ADDED"

    async def add_contact(self, intent: cmd.AddContact) -> Outcome:
        draft = self._draft()
        # One phone contact per record
        draft.contacts = [Contact(city=intent.city, phone=intent.phone, type=intent.type)]
        return draft, self._short(draft), "CONTACT ADDED"

    async def add_email(self, intent: cmd.AddEmailContact) -> Outcome:
        draft = self._draft()
        draft.email_contacts = [EmailContact(email=intent.email)]
        return draft, self._short(draft), "EMAIL CONTACT ADDED"

    async def received_from(self, intent: cmd.ReceivedFrom) -> Outcome:
        draft = self._draft()
        draft.received_from = intent.name.upper()
        return draft, self._short(draft), "RECEIVED FROM SET"

    async def ticketing(self, intent: cmd.Ticketing) -> Outcome:
        draft = self._draft()
        draft.ticketing = Ticketing(kind=intent.kind, date=intent.date, time=intent.time, office_id=self.office_id)
        return draft, self._short(draft), f"TICKETING {intent.kind} SET"

    @staticmethod
    def missing_elements(pnr: PNR) -> List[str]:
        missing = []
        if not pnr.segments:
            missing.append("AT LEAST ONE SEGMENT (SS) IS REQUIRED.")
        if not pnr.passengers:
            missing.append("AT LEAST ONE PASSENGER (NM) IS REQUIRED.")
        if not pnr.contacts:
            missing.append("AT LEAST ONE CONTACT (AP) IS REQUIRED.")
        if not pnr.received_from:
            missing.append("RECEIVED FROM (RF) IS REQUIRED.")
        return missing

    async def _fresh_locator(self) -> str:
        for _ in range(5):
            candidate = generate_locator()
            if await self._store_call(self.store.get_by_locator, candidate) is None:
                return candidate
        raise RuntimeError("COULD NOT ALLOCATE A RECORD LOCATOR")

    async def end_transaction(self, intent: cmd.EndTransaction) -> Outcome:
        draft = self._draft()
        missing = self.missing_elements(draft)
        if missing:
            raise PreconditionError("CANNOT END TRANSACTION: " + " ".join(missing))

        now = self.clock()
        if draft.has_placeholder_locator:
            draft.locator = await self._fresh_locator()
        draft.status = PNRStatus.CONFIRMED
        for s in draft.segments:
            s.booking_status = BookingStatus.CONFIRMED
        issued = format_gds_date(now.date())
        if draft.ticketing is None:
            draft.ticketing = Ticketing(
                kind="TL", date=issued, time=settings.TICKET_TIME_LIMIT,
                office_id=self.office_id, issue_date=issued,
            )
        else:
            draft.ticketing.issue_date = issued
        draft.finalized_at = now
        draft.history.append(HistoryEntry(command="ER" if intent.keep_open else "ET", result="PNR FINALIZED"))

        if draft.id:
            patch = draft.model_dump(mode="json", exclude={"id"})
            await self._store_call(self.store.update, draft.id, patch)
        else:
            draft.id = await self._store_call(self.store.save, draft)

        log_event("pnr_finalized", locator=draft.locator, pnr_id=draft.id, keep_open=intent.keep_open,
                  segments=len(draft.segments), passengers=len(draft.passengers))
        # History already recorded above so the stored copy carries it
        if intent.keep_open:
            return draft, render_full(draft, self.office_id), ""
        return None, f"END OF TRANSACTION COMPLETE - {draft.locator}", ""

    async def retrieve(self, intent: cmd.RetrievePNR) -> Outcome:
        record = await self._store_call(self.store.get_by_locator, intent.locator)
        if record is None:
            return self.active, f"PNR {intent.locator} NOT FOUND", ""
        if record.status == PNRStatus.CANCELLED:
            return self.active, f"PNR {intent.locator} IS CANCELLED", ""
        # Editable again until the next ET/ER confirms it
        record.status = PNRStatus.IN_PROGRESS
        log_event("pnr_retrieved", locator=record.locator, pnr_id=record.id)
        return record, render_full(record, self.office_id), "PNR RETRIEVED"

    async def cancel(self, intent: cmd.CancelPNR) -> Outcome:
        draft = self._draft()
        if draft.has_placeholder_locator:
            log_event("pnr_cancelled", locator=draft.locator, pnr_id=draft.id)
            return None, "PNR CANCELLED - NOTHING WAS SAVED", ""
        self.pending_cancel = True
        log_event("pnr_cancel_requested", locator=draft.locator, pnr_id=draft.id)
        return self.active, f"CONFIRM CANCELLATION OF PNR {draft.locator} - ENTER RF AND YOUR NAME TO CONFIRM", ""

    async def confirm_cancel(self, intent: cmd.ReceivedFrom) -> Outcome:
        draft = self._draft()
        draft.status = PNRStatus.CANCELLED
        draft.history.append(HistoryEntry(command=f"XI/RF {intent.name.upper()}", result="PNR CANCELLED"))
        if draft.id:
            patch = {
                "status": draft.status.value,
                "history": [h.model_dump(mode="json") for h in draft.history],
            }
            await self._store_call(self.store.update, draft.id, patch)
        log_event("pnr_cancelled", locator=draft.locator, pnr_id=draft.id)
        return None, f"PNR {draft.locator} CANCELLED", ""

    async def delete_elements(self, intent: cmd.DeleteElements) -> Outcome:
        draft = self._draft()
        elements = element_map(draft)
        for n in intent.numbers:
            if not 1 <= n <= len(elements):
                raise PreconditionError(f"ELEMENT {n} DOES NOT EXIST IN THE PNR")

        doomed: Dict[str, Set[int]] = {}
        for n in intent.numbers:
            kind, index = elements[n - 1]
            doomed.setdefault(kind, set()).add(index)

        for kind in ELEMENT_KINDS:
            drop = doomed.get(kind)
            if drop:
                setattr(draft, kind, [e for i, e in enumerate(getattr(draft, kind)) if i not in drop])
        if "ticketing" in doomed:
            draft.ticketing = None

        # OSI/SSR references follow deleted passengers and segments
        gone_pax = {i + 1 for i in doomed.get("passengers", set())}
        gone_segs = doomed.get("segments", set())
        draft.osi_elements = [o for o in draft.osi_elements if o.passenger_number not in gone_pax]
        draft.ssr_elements = [
            s for s in draft.ssr_elements
            if s.passenger_number not in gone_pax and s.segment_index not in gone_segs
        ]
        for o in draft.osi_elements:
            if o.passenger_number:
                o.passenger_number -= sum(1 for p in gone_pax if p < o.passenger_number)
        for s in draft.ssr_elements:
            if s.passenger_number:
                s.passenger_number -= sum(1 for p in gone_pax if p < s.passenger_number)
            if s.segment_index is not None:
                s.segment_index -= sum(1 for g in gone_segs if g < s.segment_index)

        return draft, self._short(draft), f"ELEMENT(S) {','.join(str(n) for n in intent.numbers)} DELETED"

    async def add_osi(self, intent: cmd.AddOSI) -> Outcome:
        draft = self._draft()
        self._require_names_and_segments(draft, "OS")
        if len(intent.message) > MAX_OSI_LENGTH:
            raise PreconditionError(f"OSI MESSAGE CANNOT EXCEED {MAX_OSI_LENGTH} CHARACTERS")
        self._require_passenger_number(draft, intent.passenger_number)

        if intent.airline == "YY":
            airlines: List[str] = []
            for s in draft.segments:
                if s.airline_code not in airlines:
                    airlines.append(s.airline_code)
        else:
            airlines = [intent.airline]
        if len(draft.osi_elements) + len(airlines) > MAX_OSI_ELEMENTS:
            raise PreconditionError(f"MAXIMUM OF {MAX_OSI_ELEMENTS} OSI ELEMENTS REACHED")

        for airline in airlines:
            draft.osi_elements.append(OSIElement(
                airline_code=airline, message=intent.message, passenger_number=intent.passenger_number,
            ))
        return draft, self._short(draft), f"{len(airlines)} OSI ELEMENT(S) ADDED"

    async def add_ssr(self, intent: cmd.AddSSR) -> Outcome:
        draft = self._draft()
        self._require_names_and_segments(draft, "SR")
        if intent.code not in VALID_SSR_CODES:
            raise PreconditionError(f"SSR CODE {intent.code} IS NOT VALID - ENTER HESSRCODES FOR THE LIST OF CODES")
        if intent.passenger_number is None:
            raise PreconditionError("PASSENGER NUMBER REQUIRED FOR SSR - EXAMPLE: SRVGML/P2")
        self._require_passenger_number(draft, intent.passenger_number)

        for index, segment in enumerate(draft.segments):
            draft.ssr_elements.append(SSRElement(
                code=intent.code,
                airline_code=segment.airline_code,
                status="HK1",
                passenger_number=intent.passenger_number,
                segment_index=index,
            ))
        return draft, self._short(draft), f"SSR {intent.code} ADDED"

    async def add_remark(self, intent: cmd.AddRemark) -> Outcome:
        draft = self._draft()
        draft.remarks.append(Remark(kind=intent.kind, text=intent.text))
        return draft, self._short(draft), f"{intent.kind} REMARK ADDED"
