"""
Tenant user directory backed by Firebase Authentication.

Accounts live in Firebase; a user's ``role`` and ``tenant_id`` are custom
claims on the account. Role changes only reach the user's requests once
their ID token is refreshed.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

from firebase_admin import auth

from app.config import DEFAULT_TENANT_ID
from app.core.firebase_client import init_firebase
from app.core.security.constants import ALL_ROLES, ROLE_VIEWER

logger = logging.getLogger(__name__)


class UserDirectoryError(Exception):
    """Base exception for user directory operations."""
    pass


class UserNotFoundError(UserDirectoryError):
    pass


class TenantMismatchError(UserDirectoryError):
    """Raised when an admin targets a user of another tenant."""
    pass


class UserDirectory(Protocol):
    def list_tenant_users(self, tenant_id: str) -> List[Dict[str, Any]]: ...

    def get_user(self, uid: str) -> Dict[str, Any]: ...

    def set_role(self, uid: str, role: str, tenant_id: str) -> Dict[str, Any]: ...


def account_from_record(record: Any) -> Dict[str, Any]:
    """Flatten a Firebase user record into the account shape the API returns."""
    claims = record.custom_claims or {}
    role = claims.get("role")
    if role not in ALL_ROLES:
        role = ROLE_VIEWER
    return {
        "uid": record.uid,
        "email": record.email,
        "display_name": record.display_name,
        "role": role,
        "tenant_id": claims.get("tenant_id") or DEFAULT_TENANT_ID,
        "disabled": bool(record.disabled),
    }


class FirebaseUserDirectory:
    """User directory over the Firebase Admin auth API."""

    def __init__(self) -> None:
        init_firebase()

    def list_tenant_users(self, tenant_id: str) -> List[Dict[str, Any]]:
        users = []
        for record in auth.list_users().iterate_all():
            account = account_from_record(record)
            if account["tenant_id"] == tenant_id:
                users.append(account)
        return users

    def get_user(self, uid: str) -> Dict[str, Any]:
        return account_from_record(self._get_record(uid))

    def set_role(self, uid: str, role: str, tenant_id: str) -> Dict[str, Any]:
        """
        Change a user's role within ``tenant_id``.

        Raises:
            ValueError: If ``role`` is unknown
            UserNotFoundError: If the user does not exist
            TenantMismatchError: If the user belongs to another tenant
        """
        if role not in ALL_ROLES:
            raise ValueError(f"Unknown role: {role}")
        record = self._get_record(uid)
        account = account_from_record(record)
        if account["tenant_id"] != tenant_id:
            raise TenantMismatchError(f"User {uid} is not in tenant {tenant_id}")

        claims = dict(record.custom_claims or {})
        claims["role"] = role
        claims["tenant_id"] = account["tenant_id"]
        auth.set_custom_user_claims(uid, claims)
        logger.info(f"Role of user {uid} in tenant {tenant_id} set to {role}")

        account["role"] = role
        return account

    def _get_record(self, uid: str) -> Any:
        try:
            return auth.get_user(uid)
        except auth.UserNotFoundError as e:
            raise UserNotFoundError(f"User {uid} not found") from e


_directory: Optional[UserDirectory] = None


def get_user_directory() -> UserDirectory:
    """Get the global user directory instance."""
    global _directory
    if _directory is None:
        _directory = FirebaseUserDirectory()
    return _directory
