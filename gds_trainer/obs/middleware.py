"""ASGI middleware for lightweight observability."""

from typing import Callable, Any
import time
import uuid

from gds_trainer.obs.context import request_id_var, session_id_var
from gds_trainer.obs.logger import log_event
from gds_trainer.obs.metrics import record_timing, inc_counter


def _route_for(path: str) -> str:
    # Collapse per-session paths so metrics don't grow one series per trainee
    parts = path.strip("/").split("/")
    if len(parts) >= 2 and parts[0] == "terminal":
        return "/terminal/{session_id}" + ("/" + "/".join(parts[2:]) if len(parts) > 2 else "")
    return path


class ObservabilityMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable[[dict], Any]):
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        request_id_var.set(str(uuid.uuid4()))
        session_id_var.set(None)
        method = scope.get("method", "")
        route = _route_for(scope.get("path", ""))
        start = time.monotonic()
        status_code = 500

        async def send_wrapper(message: dict):
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 200))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (time.monotonic() - start) * 1000.0
            record_timing("request_latency_ms", elapsed_ms, {"route": route})
            inc_counter("requests_total", {"route": route, "status": str(status_code)})
            log_event(
                "request",
                method=method,
                route=route,
                status=status_code,
                ms_total=round(elapsed_ms, 2),
            )
