import hashlib
import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("oddscron.access")

# Probed by the platform every few seconds.
QUIET_PATHS = frozenset({"/health"})


def record_job_outcome(request: Request, job: str, **fields) -> None:
    """Attach a trigger's job outcome to the request's access-log line."""
    request.state.job_outcome = {"job": job, **fields}


def _client_hash(request: Request) -> str | None:
    if not request.client:
        return None
    return hashlib.sha256((request.client.host or "").encode()).hexdigest()[:12]


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """One JSON line per request; trigger routes add the job they ran."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        # Query strings are left out: the odds trigger accepts its secret there.
        entry = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "client_ip_hash": _client_hash(request),
        }
        outcome = getattr(request.state, "job_outcome", None)
        if outcome:
            entry.update(outcome)

        if response.status_code >= 400:
            level = logging.WARNING
        elif request.url.path in QUIET_PATHS:
            level = logging.DEBUG
        else:
            level = logging.INFO
        logger.log(level, json.dumps(entry, default=str))

        response.headers["X-Request-ID"] = request_id
        return response


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    # The scheduler logs every job submission at INFO.
    logging.getLogger("apscheduler.executors.default").setLevel(logging.WARNING)
