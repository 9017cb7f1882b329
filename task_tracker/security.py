"""Anti-forgery tokens and flash messages stored in the signed session cookie."""

import hashlib
import hmac
import logging
import secrets
from typing import Dict, List, Optional

from starlette.requests import Request

from .errors import SecurityTokenError

logger = logging.getLogger(__name__)

CSRF_SESSION_KEY = "_csrf_secret"
FLASH_SESSION_KEY = "_flashes"


def _session_secret(request: Request) -> str:
    secret = request.session.get(CSRF_SESSION_KEY)
    if not secret:
        secret = secrets.token_hex(32)
        request.session[CSRF_SESSION_KEY] = secret
    return secret


def _sign(secret: str, action: str, task_id: int) -> str:
    message = f"{action}{task_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def csrf_token(request: Request, action: str, task_id: int) -> str:
    """Return the anti-forgery token for an action on one task.

    Args:
        request: Current request; its session holds the signing secret
        action: Action name, e.g. ``delete`` or ``complete``
        task_id: Task the action applies to

    Returns:
        Hex token to embed in the action's form
    """
    return _sign(_session_secret(request), action, task_id)


def verify_csrf_token(request: Request, action: str, task_id: int, token: Optional[str]) -> None:
    """Check a submitted anti-forgery token.

    Raises:
        SecurityTokenError: If the token is missing or does not match
    """
    secret = request.session.get(CSRF_SESSION_KEY)
    if not token or not secret:
        logger.warning(f"Missing security token for {action} on task {task_id}")
        raise SecurityTokenError(action)

    if not hmac.compare_digest(_sign(secret, action, task_id), token):
        logger.warning(f"Security token mismatch for {action} on task {task_id}")
        raise SecurityTokenError(action)


def flash(request: Request, category: str, message: str) -> None:
    """Queue a message for the next rendered page."""
    request.session.setdefault(FLASH_SESSION_KEY, []).append(
        {"category": category, "message": message}
    )


def get_flashed_messages(request: Request) -> List[Dict[str, str]]:
    """Return and clear the queued flash messages."""
    return request.session.pop(FLASH_SESSION_KEY, [])
