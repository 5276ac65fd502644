import os
from typing import Any, Callable, Dict, Optional

import firebase_admin
from firebase_admin import auth, credentials, firestore
from fastapi import Depends, Header, HTTPException, Request, status

from app.config import DEFAULT_TENANT_ID, logger
from app.core.security.constants import ALL_ROLES, ROLE_VIEWER
from app.core.security.utils import log_security_event

_firebase_app: Optional[firebase_admin.App] = None
_db: Optional[firestore.Client] = None


def init_firebase() -> None:
    global _firebase_app, _db
    if _firebase_app is not None and _db is not None:
        return
    project_id = os.getenv("FIREBASE_PROJECT_ID")
    credentials_path = os.getenv("FIREBASE_CREDENTIALS_PATH")
    if not project_id or not credentials_path:
        raise RuntimeError("FIREBASE_PROJECT_ID and FIREBASE_CREDENTIALS_PATH must be configured")

    # Relative paths are resolved against the project root, then the cwd
    if not os.path.isabs(credentials_path):
        app_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        project_root = os.path.dirname(app_dir)
        possible_paths = [
            os.path.join(project_root, credentials_path),
            credentials_path,
        ]
        for path in possible_paths:
            if os.path.exists(path):
                credentials_path = os.path.abspath(path)
                logger.debug("Found Firebase credentials at: %s", credentials_path)
                break
        else:
            raise FileNotFoundError(
                f"Firebase credentials file not found. Tried: {', '.join(possible_paths)}. "
                f"Set FIREBASE_CREDENTIALS_PATH to an absolute path or ensure the file exists."
            )

    if not os.path.exists(credentials_path):
        raise FileNotFoundError(f"Firebase credentials file not found at: {credentials_path}")

    cred = credentials.Certificate(credentials_path)
    _firebase_app = firebase_admin.initialize_app(cred, {"projectId": project_id})
    _db = firestore.client()
    logger.info("Firebase initialized for project %s", project_id)


def get_firestore_client() -> firestore.Client:
    if _db is None:
        init_firebase()
    if _db is None:
        raise RuntimeError("Firestore client is not initialized")
    return _db


def verify_id_token(id_token: str) -> Dict[str, Any]:
    init_firebase()
    try:
        # Allow 5 minutes of clock skew for dev environments (docker vs host time drift)
        return auth.verify_id_token(id_token, clock_skew_seconds=300)
    except Exception as exc:
        logger.warning("Failed to verify Firebase ID token: %s", exc)
        raise


def user_from_claims(decoded: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build the request user from verified token claims.

    ``role`` and ``tenant_id`` are custom claims set by an administrator;
    unknown or missing roles fall back to Viewer.
    """
    uid = decoded.get("uid")
    if not uid:
        raise ValueError("Invalid token payload")
    role = decoded.get("role")
    if role not in ALL_ROLES:
        role = ROLE_VIEWER
    return {
        "uid": uid,
        "email": decoded.get("email"),
        "role": role,
        "tenant_id": decoded.get("tenant_id") or DEFAULT_TENANT_ID,
    }


async def get_current_user(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing Authorization header")
    token = authorization.split(" ", 1)[1]
    try:
        decoded = verify_id_token(token)
    except Exception:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    try:
        return user_from_claims(decoded)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")


def require_roles(*roles: str) -> Callable[..., Any]:
    """Dependency factory that only admits users holding one of ``roles``."""
    allowed = frozenset(roles)

    async def _dependency(request: Request, user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user["role"] not in allowed:
            log_security_event("role_denied", conn=request, user=user, required=sorted(allowed))
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
        return user

    return _dependency
