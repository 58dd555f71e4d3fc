# bookmeta/auth.py
"""
Caller checks for the batch backfill entry point.

Two callers are allowed: the scheduler, recognised by the shape of its
token, and authenticated administrators. Everyone else is rejected before
any provider or the store is touched.
"""

import base64
import binascii
import json
import logging
from typing import Callable, Dict, FrozenSet, Optional

logger = logging.getLogger(__name__)

SCHEDULER_ROLE = "anon"


class AuthorizationError(Exception):
    def __init__(self, message: str, status: int = 401):
        super().__init__(message)
        self.status = status


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None


def decode_token_payload(token: str) -> Optional[Dict]:
    """
    Decode the payload segment of a JWT without verifying it.

    Only the claim shape is inspected here; signature checks belong to the gateway.
    """
    parts = token.split(".")
    if len(parts) < 2 or not parts[1]:
        return None
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(segment))
    except (binascii.Error, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


def is_scheduler_token(token: Optional[str], project_ref: Optional[str]) -> bool:
    if not token or not project_ref:
        return False
    payload = decode_token_payload(token)
    if not payload:
        return False
    return payload.get("role") == SCHEDULER_ROLE and payload.get("ref") == project_ref


class StaticAdminDirectory:
    """Admin directory backed by a fixed set of bearer tokens"""

    def __init__(self, admin_tokens: FrozenSet[str]):
        self.admin_tokens = admin_tokens

    def authenticate(self, token: str) -> Optional[str]:
        return token if token in self.admin_tokens else None

    def has_admin_role(self, user_id: str) -> bool:
        return user_id in self.admin_tokens


def authorize_backfill_caller(
    authorization: Optional[str],
    project_ref: Optional[str],
    authenticate: Callable[[str], Optional[str]],
    has_admin_role: Callable[[str], bool],
) -> str:
    """
    Decide whether a caller may run the batch job.

    Returns:
        "scheduler" or "admin"

    Raises:
        AuthorizationError: 401 when unauthenticated, 403 when not an admin
    """
    token = bearer_token(authorization)

    if is_scheduler_token(token, project_ref):
        logger.info("Scheduler triggered backfill")
        return "scheduler"

    if not token:
        raise AuthorizationError("Unauthorized", status=401)

    user_id = authenticate(token)
    if not user_id:
        raise AuthorizationError("Unauthorized", status=401)

    if not has_admin_role(user_id):
        raise AuthorizationError("Forbidden - Admin access required", status=403)

    logger.info(f"Admin {user_id[:8]}... triggered backfill")
    return "admin"
