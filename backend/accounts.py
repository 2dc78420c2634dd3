import re
from typing import Dict, Optional

ALLOWED_USER_ROLES = {"admin", "user"}
DEFAULT_USER_ROLE = "user"

email_regex = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def is_valid_email(value: Optional[str]) -> bool:
    normalized = normalize_email(value)
    return bool(normalized and email_regex.match(normalized))


def normalize_role(value: Optional[str]) -> str:
    normalized = str(value or "").strip().lower()
    return normalized if normalized in ALLOWED_USER_ROLES else DEFAULT_USER_ROLE


def get_user_role(user_document, default_admin_email: str = "") -> str:
    if not user_document:
        return DEFAULT_USER_ROLE

    email = normalize_email(user_document.get("email"))
    if default_admin_email and email == normalize_email(default_admin_email):
        return "admin"

    return normalize_role(user_document.get("role", DEFAULT_USER_ROLE))


def serialize_user(user_document, default_admin_email: str = "") -> Dict[str, object]:
    if not user_document:
        return {}

    created_at = user_document.get("createdAt")
    return {
        "id": str(user_document.get("_id")),
        "name": user_document.get("name", "") or "",
        "email": user_document.get("email", "") or "",
        "role": get_user_role(user_document, default_admin_email),
        "createdAt": f"{created_at.isoformat()}Z" if created_at else None,
    }
