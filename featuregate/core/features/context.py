"""
Evaluation context model.

A Context is what the evaluation service targets against: free-form
attributes plus the optional user and company the request acts for.

Usage:
    context = Context(user=User("u-1", name="Ada"))
    context["plan.tier"] = "gold"
"""

from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import AnyUrl


def _require_id(kind: str, value: Any) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{kind} id must be a non-empty string")


@dataclass
class User:
    """User the request is evaluated for."""
    id: str
    name: str | None = None
    email: str | None = None
    avatar: AnyUrl | None = None

    def __post_init__(self) -> None:
        _require_id("User", self.id)


@dataclass
class Company:
    """Company the request is evaluated for."""
    id: str
    name: str | None = None
    avatar: AnyUrl | None = None

    def __post_init__(self) -> None:
        _require_id("Company", self.id)


@dataclass
class Context(MutableMapping):
    """
    Structured evaluation context.

    Behaves as an ordered mapping of attribute name to scalar value.
    Writing an existing key overwrites it in place.

    Attributes:
        attributes: Free-form attributes (insertion ordered)
        user: User the request acts for, if known
        company: Company the request acts for, if known
    """
    attributes: dict[str, Any] = field(default_factory=dict)
    user: User | None = None
    company: Company | None = None

    def __post_init__(self) -> None:
        # Writes must not reach the caller's mapping
        self.attributes = dict(self.attributes)

    def __getitem__(self, key: str) -> Any:
        return self.attributes[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def __delitem__(self, key: str) -> None:
        del self.attributes[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.attributes)

    def __len__(self) -> int:
        return len(self.attributes)
