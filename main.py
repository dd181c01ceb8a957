import re
from contextlib import asynccontextmanager
from typing import Optional

import redis
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from gds_trainer.config import settings
from gds_trainer.infrastructure.resilience import CircuitBreaker, ProductionMiddleware
from gds_trainer.interpreter import TerminalSession
from gds_trainer.obs.logger import log_event
from gds_trainer.obs.metrics import get_metrics_snapshot
from gds_trainer.obs.middleware import ObservabilityMiddleware
from gds_trainer.repository.base import FlightRepository, PNRStore
from gds_trainer.repository.memory import InMemoryFlightRepository
from gds_trainer.session.redis_store import RedisPNRStore
from gds_trainer.session.store import SessionStore


SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def create_app(
    repository: Optional[FlightRepository] = None,
    pnr_store: Optional[PNRStore] = None,
    redis_client: Optional[redis.Redis] = None,
):
    """Build the FastAPI app wrapped in the observability and production middleware."""
    breaker = CircuitBreaker(name="pnr_store", failure_threshold=5, recovery_timeout=30)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_event("startup", env=settings.APP_ENV, office_id=settings.OFFICE_ID)

        app.state.repository = repository or InMemoryFlightRepository()
        app.state.pnr_store = pnr_store or RedisPNRStore()
        app.state.pnr_breaker = breaker
        app.state.sessions = SessionStore(
            lambda session_id: TerminalSession(
                session_id,
                app.state.repository,
                app.state.pnr_store,
                breaker=app.state.pnr_breaker,
            )
        )

        yield

        log_event("shutdown", sessions=len(app.state.sessions))

    api = FastAPI(
        title="GDS Terminal Trainer",
        version="1.0.0",
        lifespan=lifespan,
    )

    @api.get("/")
    async def root():
        return {
            "service": "GDS Terminal Trainer",
            "version": "1.0.0",
            "status": "running",
            "commands": "POST /terminal/{session_id}/command",
        }

    @api.get("/health")
    async def health():
        return {"status": "healthy", "service": "gds-terminal-trainer"}

    @api.get("/metrics")
    async def metrics(request: Request):
        # Guard against missing state when the app is wrapped by middleware in tests
        breaker_state = getattr(request.app.state, "pnr_breaker", breaker).get_state()
        sessions = getattr(request.app.state, "sessions", None)
        snapshot = get_metrics_snapshot()
        snapshot.update({
            "circuit_breaker": breaker_state,
            "active_sessions": len(sessions) if sessions is not None else 0,
        })
        return snapshot

    @api.post("/terminal/{session_id}/command")
    async def terminal_command(request: Request, session_id: str):
        if not SESSION_ID_RE.match(session_id):
            raise HTTPException(status_code=400, detail="Invalid session id")

        command = await _read_command(request)
        session = request.app.state.sessions.get_or_create(session_id)
        response = await session.execute(command)
        return PlainTextResponse(response)

    @api.delete("/terminal/{session_id}")
    async def reset_terminal(request: Request, session_id: str):
        """Drop the session: its search and any unsaved PNR are lost."""
        cleared = request.app.state.sessions.clear(session_id)
        log_event("session_reset", session_id=session_id, existed=cleared)
        return {"status": "reset", "session_id": session_id, "existed": cleared}

    wrapped = ObservabilityMiddleware(api)
    wrapped = ProductionMiddleware(wrapped, redis_client)
    wrapped.add_circuit_breaker("pnr_store", breaker)
    return wrapped


async def _read_command(request: Request) -> Optional[str]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Expected a JSON object")
        command = body.get("command")
    else:
        form = await request.form()
        command = form.get("command")
    return command if isinstance(command, str) else None


app = create_app(redis_client=redis.from_url(settings.REDIS_URL) if settings.REDIS_URL else None)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
        log_level="info"
    )
