"""
Role-set normalization for directory profiles.

A profile spreads its roles across four fields (role, roles, sub_role,
sub_roles), and each field may be stored as:

  - a single token:               "Admin"
  - a JSON array inside a string: '["teacher", "admin"]'
  - a comma-separated string:     "teacher, admin"

All of them fold into one lower-cased, deduplicated set. Parsing never
raises: anything unrecognizable contributes no tokens.
"""

import json
from typing import Any

from app.models.user import DirectoryUser

ADMIN_ROLE = "admin"

ROLE_FIELDS = ("role", "roles", "sub_role", "sub_roles")


def _clean_tokens(items: list[Any]) -> list[str]:
    return [str(item).strip().lower() for item in items if item is not None and str(item).strip()]


def parse_role_value(value: Any) -> list[str]:
    """
    Parse one role field into lower-cased tokens.

    Tries a JSON array first (only when the text looks like one), then a
    comma split. A single token is just a one-element comma split.
    """
    if isinstance(value, (list, tuple, set)):
        return _clean_tokens(list(value))
    if not isinstance(value, str):
        return []

    text = value.strip()
    if not text:
        return []

    if text.startswith("[") and text.endswith("]"):
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return _clean_tokens(parsed)

    return _clean_tokens(text.split(","))


def normalize_role_set(user: DirectoryUser | None) -> set[str]:
    """Merge every role-bearing field of a profile into one set."""
    if user is None:
        return set()
    roles: set[str] = set()
    for field in ROLE_FIELDS:
        roles.update(parse_role_value(getattr(user, field, None)))
    return roles


def has_admin_role(user: DirectoryUser | None) -> bool:
    return ADMIN_ROLE in normalize_role_set(user)
