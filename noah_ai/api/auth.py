"""Firebase ID token verification helpers."""
from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import Header
from firebase_admin import auth as firebase_auth
from firebase_admin.exceptions import FirebaseError

from ..errors import Unauthenticated
from ..firestore import ensure_firebase_app

logger = logging.getLogger(__name__)

DEV_BYPASS_ENV = "NOAH_DEV_AUTH_BYPASS"


def get_current_user(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    dev_user: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """Return the authenticated caller's Firebase uid.

    During development/testing set NOAH_DEV_AUTH_BYPASS=1 and supply X-User-Id.
    """

    if os.getenv(DEV_BYPASS_ENV) == "1":
        if dev_user:
            return dev_user
        raise Unauthenticated("Auth bypass enabled but X-User-Id header missing (dev only).")

    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated("Authentication required")

    token = authorization.split(" ", 1)[1].strip()
    ensure_firebase_app()
    try:
        claims = firebase_auth.verify_id_token(token)
    except (ValueError, FirebaseError) as exc:
        logger.info(f"Rejected ID token: {exc}")
        raise Unauthenticated("Invalid authentication token") from exc

    uid = claims.get("uid") or claims.get("sub")
    if not uid:
        raise Unauthenticated("Token missing uid claim.")
    return uid
