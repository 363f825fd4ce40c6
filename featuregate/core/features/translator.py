"""
Flat evaluation context translation.

Maps a flat, externally defined evaluation context (string keys with
scalar or nested values) into a structured Context.

Reserved keys populate the user and company:
    targetingKey, userId, name, email, avatar -> user
    companyId, companyName, companyAvatar    -> company

Every other key is copied into the context's attributes. Nested
mappings are flattened with dotted keys:

    translate({"plan": {"tier": "gold"}})["plan.tier"] == "gold"
"""

from collections.abc import Mapping
from typing import Any

from pydantic import AnyUrl, TypeAdapter, ValidationError

from .context import Company, Context, User

TARGETING_KEY = "targetingKey"
USER_ID_KEY = "userId"
USER_NAME_KEY = "name"
USER_EMAIL_KEY = "email"
USER_AVATAR_KEY = "avatar"
COMPANY_ID_KEY = "companyId"
COMPANY_NAME_KEY = "companyName"
COMPANY_AVATAR_KEY = "companyAvatar"

RESERVED_KEYS = frozenset({
    TARGETING_KEY,
    USER_ID_KEY,
    USER_NAME_KEY,
    USER_EMAIL_KEY,
    USER_AVATAR_KEY,
    COMPANY_ID_KEY,
    COMPANY_NAME_KEY,
    COMPANY_AVATAR_KEY,
})

_url_adapter = TypeAdapter(AnyUrl)


def translate(
    flat: Mapping[str, Any] | None,
    *,
    targeting_key: str | None = None,
) -> Context:
    """
    Translate a flat evaluation context into a Context.

    Args:
        flat: External context values, or None
        targeting_key: Targeting key carried outside the mapping; takes
            precedence over both reserved user id keys

    Returns:
        A new Context. Empty when `flat` is None and no targeting key
        is given.
    """
    flat = flat or {}

    user_id = _first_id(targeting_key, _get_string(flat, TARGETING_KEY), _get_string(flat, USER_ID_KEY))
    user = None
    if user_id:
        user = User(
            user_id,
            name=_get_string(flat, USER_NAME_KEY),
            email=_get_string(flat, USER_EMAIL_KEY),
            avatar=parse_avatar(_get_string(flat, USER_AVATAR_KEY)),
        )

    company_id = _first_id(_get_string(flat, COMPANY_ID_KEY))
    company = None
    if company_id:
        company = Company(
            company_id,
            name=_get_string(flat, COMPANY_NAME_KEY),
            avatar=parse_avatar(_get_string(flat, COMPANY_AVATAR_KEY)),
        )

    context = Context(user=user, company=company)
    for key, value in flat.items():
        if key not in RESERVED_KEYS:
            expand_value(context, key, value)

    return context


def expand_value(context: Context, name: str, value: Any) -> None:
    """Write `value` under `name`, flattening nested mappings."""
    if isinstance(value, Mapping):
        for child, child_value in value.items():
            expand_value(context, f"{name}.{child}", child_value)
    else:
        # Lists are values, not structures
        context[name] = value


def parse_avatar(value: str | None) -> AnyUrl | None:
    """Parse an absolute URL, returning None when malformed."""
    if not value or not value.strip():
        return None
    try:
        return _url_adapter.validate_python(value)
    except ValidationError:
        return None


def _get_string(flat: Mapping[str, Any], key: str) -> str | None:
    value = flat.get(key)
    return value if isinstance(value, str) else None


def _first_id(*candidates: str | None) -> str | None:
    # Blank ids count as missing
    return next((c for c in candidates if c and c.strip()), None)
