import asyncio
import inspect
import json
import time
from typing import Dict, Optional, Callable, Any, Tuple
from datetime import datetime
from collections import defaultdict, deque
from enum import Enum
import string

import redis

from gds_trainer.config import settings
from gds_trainer.obs.logger import log_event


class CircuitState(Enum):
    CLOSED = "closed"  # Normal operation
    OPEN = "open"      # Failing, reject calls
    HALF_OPEN = "half_open"  # Testing if the collaborator recovered


class CircuitOpenError(Exception):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name.upper()} UNAVAILABLE - TRY AGAIN LATER")


class CircuitBreaker:
    """Stops calling a failing collaborator for ``recovery_timeout`` seconds.

    Used around PNR store calls so a dead Redis turns into a fast, readable
    terminal error instead of a stall on every ET.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        expected_exception: type = Exception
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.failure_count = 0
        self.last_failure_time = None
        self.state = CircuitState.CLOSED

    async def async_call(self, func: Callable, *args, **kwargs) -> Any:
        if self.state == CircuitState.OPEN:
            if self._should_attempt_reset():
                self.state = CircuitState.HALF_OPEN
            else:
                raise CircuitOpenError(self.name)

        try:
            result = await func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _on_success(self):
        self.failure_count = 0
        self.state = CircuitState.CLOSED

    def _on_failure(self):
        self.failure_count += 1
        self.last_failure_time = time.time()
        if self.failure_count >= self.failure_threshold:
            if self.state != CircuitState.OPEN:
                log_event("circuit_open", level="WARNING", breaker=self.name, failures=self.failure_count)
            self.state = CircuitState.OPEN

    def _should_attempt_reset(self) -> bool:
        return bool(
            self.last_failure_time and
            time.time() - self.last_failure_time >= self.recovery_timeout
        )

    def get_state(self) -> Dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "last_failure": self.last_failure_time
        }


class RateLimiter:
    def __init__(self, redis_client: redis.Redis = None):
        self.redis_client = redis_client
        self.local_cache = defaultdict(lambda: deque(maxlen=1000))

    def check_rate_limit(
        self,
        key: str,
        max_requests: int,
        window_seconds: int
    ) -> Tuple[bool, Dict]:
        if self.redis_client:
            try:
                return self._check_redis_rate_limit(key, max_requests, window_seconds)
            except redis.RedisError as e:
                log_event("rate_limit_redis_error", level="WARNING", error=str(e))
        return self._check_local_rate_limit(key, max_requests, window_seconds)

    def _check_redis_rate_limit(
        self,
        key: str,
        max_requests: int,
        window_seconds: int
    ) -> Tuple[bool, Dict]:
        redis_key = f"rate_limit:{key}"
        now = time.time()
        pipeline = self.redis_client.pipeline()

        pipeline.zremrangebyscore(redis_key, 0, now - window_seconds)
        pipeline.zadd(redis_key, {str(now): now})
        pipeline.zcard(redis_key)
        pipeline.expire(redis_key, window_seconds + 1)

        results = pipeline.execute()
        request_count = results[2]

        allowed = request_count <= max_requests
        return allowed, {
            "allowed": allowed,
            "current": request_count,
            "limit": max_requests,
            "window_seconds": window_seconds,
            "retry_after": window_seconds if not allowed else None
        }

    def _check_local_rate_limit(
        self,
        key: str,
        max_requests: int,
        window_seconds: int
    ) -> Tuple[bool, Dict]:
        now = time.time()
        request_times = self.local_cache[key]

        cutoff = now - window_seconds
        while request_times and request_times[0] < cutoff:
            request_times.popleft()

        if len(request_times) < max_requests:
            request_times.append(now)
            return True, {
                "allowed": True,
                "current": len(request_times),
                "limit": max_requests,
                "window_seconds": window_seconds
            }

        return False, {
            "allowed": False,
            "current": len(request_times),
            "limit": max_requests,
            "window_seconds": window_seconds,
            "retry_after": window_seconds
        }


class HealthChecker:
    def __init__(self):
        self.checks = {}
        self.last_check_time = {}
        self.check_results = {}

    def register_check(self, name: str, check_func: Callable, interval_seconds: int = 30):
        self.checks[name] = {
            "func": check_func,
            "interval": interval_seconds
        }

    async def run_checks(self) -> Dict:
        results = {}
        tasks = []

        for name, check_info in self.checks.items():
            last_time = self.last_check_time.get(name, 0)
            if time.time() - last_time >= check_info["interval"]:
                tasks.append(self._run_single_check(name, check_info["func"]))

        if tasks:
            for name, result in await asyncio.gather(*tasks):
                results[name] = result
                self.check_results[name] = result
                self.last_check_time[name] = time.time()

        # Cached results for checks not due this time
        for name in self.checks:
            if name not in results:
                results[name] = self.check_results.get(name, {"status": "unknown"})

        all_healthy = all(
            r.get("status") == "healthy"
            for r in results.values()
            if r.get("status") != "unknown"
        )

        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": results,
            "timestamp": datetime.now().isoformat()
        }

    async def _run_single_check(self, name: str, check_func: Callable) -> Tuple[str, Dict]:
        try:
            start = time.time()
            if inspect.iscoroutinefunction(check_func):
                result = await check_func()
            else:
                result = check_func()

            duration = time.time() - start
            return name, {
                "status": "healthy" if result else "unhealthy",
                "duration_ms": int(duration * 1000),
                "timestamp": datetime.now().isoformat()
            }
        except Exception as e:
            return name, {
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.now().isoformat()
            }


_PRINTABLE = set(string.printable) - set("\t\n\r\x0b\x0c")


class RequestValidator:
    @staticmethod
    def validate_command(command: Optional[str], max_length: Optional[int] = None) -> Tuple[bool, Optional[str]]:
        """Reject what can never be a terminal command before it reaches the parser."""
        max_length = max_length or settings.MAX_COMMAND_LENGTH
        if command is None or not command.strip():
            return False, "EMPTY COMMAND"
        if len(command) > max_length:
            return False, f"COMMAND TOO LONG - MAX {max_length} CHARACTERS"
        if any(ch not in _PRINTABLE for ch in command.strip()):
            return False, "COMMAND CONTAINS INVALID CHARACTERS"
        return True, None


class ProductionMiddleware:
    """Rate limiting for the command endpoint and the detailed health report."""

    def __init__(self, app, redis_client: redis.Redis = None, max_requests: Optional[int] = None,
                 window_seconds: int = 60):
        self.app = app
        self.rate_limiter = RateLimiter(redis_client)
        self.health_checker = HealthChecker()
        self.circuit_breakers: Dict[str, CircuitBreaker] = {}
        self.max_requests = max_requests or settings.RATE_LIMIT_PER_MINUTE
        self.window_seconds = window_seconds

        self._register_health_checks()

    def _register_health_checks(self):
        def check_redis():
            if self.rate_limiter.redis_client is None:
                return True  # in-memory mode
            try:
                return bool(self.rate_limiter.redis_client.ping())
            except redis.RedisError:
                return False

        self.health_checker.register_check("redis", check_redis, 30)

    def add_circuit_breaker(self, name: str, breaker: Optional[CircuitBreaker] = None, **kwargs) -> CircuitBreaker:
        self.circuit_breakers[name] = breaker or CircuitBreaker(name, **kwargs)
        return self.circuit_breakers[name]

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http":
            path = scope["path"]

            if path == "/health/detailed":
                health_status = await self.health_checker.run_checks()
                health_status["circuit_breakers"] = [b.get_state() for b in self.circuit_breakers.values()]
                await self._send_json_response(send, health_status)
                return

            if path.startswith("/terminal/") and path.endswith("/command"):
                client = scope.get("client") or ("unknown", None)
                allowed, limit_info = self.rate_limiter.check_rate_limit(
                    f"ip:{client[0]}",
                    max_requests=self.max_requests,
                    window_seconds=self.window_seconds
                )

                if not allowed:
                    log_event("rate_limited", level="WARNING", client=client[0], path=path)
                    await self._send_rate_limit_response(send, limit_info)
                    return

        await self.app(scope, receive, send)

    async def _send_json_response(self, send, data: Dict, status: int = 200):
        body = json.dumps(data, default=str).encode()
        await send({
            "type": "http.response.start",
            "status": status,
            "headers": [[b"content-type", b"application/json"]],
        })
        await send({
            "type": "http.response.body",
            "body": body,
        })

    async def _send_rate_limit_response(self, send, limit_info: Dict):
        await send({
            "type": "http.response.start",
            "status": 429,
            "headers": [
                [b"content-type", b"text/plain; charset=utf-8"],
                [b"retry-after", str(limit_info["retry_after"]).encode()],
            ],
        })
        await send({
            "type": "http.response.body",
            "body": b"RATE LIMIT EXCEEDED - WAIT BEFORE SENDING MORE COMMANDS",
        })
