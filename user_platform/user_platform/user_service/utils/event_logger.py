"""
Event logger utility for user events.
"""
from datetime import datetime
from typing import Optional
from fastapi import Request
import sys
import logging
import os

from ..config import settings

# Create handlers list
handlers = [logging.StreamHandler(sys.stdout)]

# Try to add file handler, but continue without it if directory creation fails
if settings.LOG_DIR:
    try:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(settings.LOG_DIR, "user_events.log")))
    except OSError as e:
        # Log to stderr if file logging setup fails
        print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s:%(message)s",
    handlers=handlers
)

logger = logging.getLogger(__name__)


ALLOWED_EVENT_TYPES = {
    "register",
    "login_success",
    "login_failure",
    "profile_read",
    "profile_update",
}


def client_ip(request: Request) -> Optional[str]:
    """Return the caller IP, falling back to the first X-Forwarded-For entry."""
    if request.client:
        return request.client.host

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded_for.split(",")[0].strip()
    return None


def log_user_event(
    event_type: str,
    request: Request,
    user_id: Optional[int] = None,
    **fields
) -> None:
    """
    Log a user event to stdout (and the event log file when LOG_DIR is set).

    Args:
        event_type: One of: register, login_success, login_failure,
                    profile_read, profile_update
        request: FastAPI Request object
        user_id: ID of the affected user, when known
        **fields: Extra key/value pairs appended to the log line. Never pass
                  passwords or tokens.

    Raises:
        ValueError: If event_type is invalid
    """
    if event_type not in ALLOWED_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type '{event_type}'. Must be one of: {', '.join(sorted(ALLOWED_EVENT_TYPES))}"
        )

    extra = "".join(f" {key}={value}" for key, value in sorted(fields.items()))
    logger.info(
        "USER %s user_id=%s ip=%s user_agent=%s timestamp=%s%s",
        event_type, user_id, client_ip(request), request.headers.get("user-agent"),
        datetime.utcnow().isoformat(), extra
    )
