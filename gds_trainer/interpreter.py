"""Per-session command interpreter.

One ``TerminalSession`` per trainee: it owns the search cursor and the PNR
builder, runs one command at a time and turns every outcome, failures
included, into the text block shown on the terminal.
"""

import asyncio
import time
from datetime import datetime
from typing import Callable, Optional

from gds_trainer.config import settings
from gds_trainer.errors import CommandSyntaxError, PreconditionError, TerminalError, UnknownCommandError
from gds_trainer.help import help_text
from gds_trainer.infrastructure.resilience import CircuitBreaker, RequestValidator
from gds_trainer.obs.context import command_family_var, session_id_var
from gds_trainer.obs.logger import log_event
from gds_trainer.obs.metrics import record_command
from gds_trainer.parse import commands as cmd
from gds_trainer.pnr.builder import PNRBuilder
from gds_trainer.query.engine import QueryEngine
from gds_trainer.query.pagination import NO_ACTIVE_SEARCH, PaginationCursor
from gds_trainer.reference.decoder import ReferenceDecoder
from gds_trainer.repository.base import FlightRepository, PNRStore
from gds_trainer.utils.dates import get_current_datetime


PNR_INTENTS = (
    cmd.SellSegment, cmd.AddName, cmd.AddContact, cmd.AddEmailContact,
    cmd.ReceivedFrom, cmd.Ticketing, cmd.EndTransaction, cmd.RetrievePNR,
    cmd.CancelPNR, cmd.DeleteElements, cmd.AddOSI, cmd.AddSSR, cmd.AddRemark,
)


def _outcome_for(exc: TerminalError) -> str:
    if isinstance(exc, CommandSyntaxError):
        return "syntax"
    if isinstance(exc, UnknownCommandError):
        return "unknown"
    return "precondition"


class TerminalSession:
    def __init__(
        self,
        session_id: str,
        repository: FlightRepository,
        store: PNRStore,
        breaker: Optional[CircuitBreaker] = None,
        page_size: Optional[int] = None,
        office_id: Optional[str] = None,
        clock: Callable[[], datetime] = get_current_datetime,
    ):
        self.session_id = session_id
        self.cursor = PaginationCursor()
        self.engine = QueryEngine(repository, page_size or settings.PAGE_SIZE, clock)
        self.builder = PNRBuilder(store, breaker, office_id, clock)
        self.decoder = ReferenceDecoder(repository)
        self._lock = asyncio.Lock()

    @property
    def active_pnr(self):
        return self.builder.active

    async def execute(self, raw: str) -> str:
        """Run one raw command and return the terminal response."""
        async with self._lock:
            session_id_var.set(self.session_id)
            command_family_var.set(None)
            self.builder.begin_command()
            start = time.monotonic()
            family = "invalid"
            outcome = "ok"
            try:
                valid, error = RequestValidator.validate_command(raw)
                if not valid:
                    outcome = "syntax"
                    return error
                intent = cmd.parse(raw)
                family = cmd.command_family(intent)
                command_family_var.set(family)
                return await self.dispatch(intent, raw.strip().upper())
            except TerminalError as e:
                outcome = _outcome_for(e)
                if isinstance(e, UnknownCommandError):
                    family = "unknown"
                log_event("command_rejected", outcome=outcome, command=(raw or "").strip()[:40], detail=str(e))
                return str(e)
            except Exception as e:
                # Collaborator failure: state was not touched, report and keep serving
                outcome = "error"
                log_event("command_failed", level="ERROR", command=(raw or "").strip()[:40],
                          error_type=type(e).__name__, error=str(e))
                return f"ERROR PROCESSING COMMAND: {e}"
            finally:
                elapsed_ms = (time.monotonic() - start) * 1000.0
                record_command(family, outcome, elapsed_ms)
                log_event("command", outcome=outcome, ms_total=round(elapsed_ms, 2))

    async def dispatch(self, intent: cmd.CommandIntent, raw: str) -> str:
        if isinstance(intent, cmd.Availability):
            return await self.engine.search(intent, self.cursor)
        if isinstance(intent, cmd.Navigate):
            if not self.cursor.active:
                raise PreconditionError(NO_ACTIVE_SEARCH)
            if intent.direction == "next":
                return await self.engine.next_page(self.cursor)
            return await self.engine.previous_page(self.cursor)
        if isinstance(intent, PNR_INTENTS):
            return await self.builder.handle(intent, raw, self.cursor)
        if isinstance(intent, cmd.EncodeCity):
            return await self.decoder.encode_city(intent)
        if isinstance(intent, cmd.DecodeCode):
            return await self.decoder.decode(intent)
        if isinstance(intent, cmd.EncodeAirline):
            return await self.decoder.encode_airline(intent)
        if isinstance(intent, cmd.Help):
            return help_text(intent.topic)
        raise UnknownCommandError(raw.split()[0] if raw else "")
