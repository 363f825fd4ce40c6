"""
Feature Gate Interfaces - Core abstractions.

These define the contracts between the gate and the external
evaluation service, and the configuration attached to gated units.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, TypeAlias

from starlette.requests import HTTPConnection

from .context import Context


class TrackingStrategy(str, Enum):
    """Whether evaluating a feature also reports its usage."""
    DEFAULT = "default"
    ACTIVE = "active"
    INACTIVE = "inactive"


class Surface(str, Enum):
    """Execution surface a restriction is enforced on."""
    BRANCH = "branch"
    ACTION = "action"
    PAGE = "page"
    ENDPOINT = "endpoint"


@dataclass(frozen=True)
class FeatureConfig:
    """Remote configuration attached to a feature."""
    key: str
    payload: Any = None


@dataclass(frozen=True)
class Feature:
    """
    Snapshot of one feature, evaluated for one context.

    Attributes:
        key: Feature key (e.g., "beta")
        enabled: Evaluated on/off state
        config: Matched remote configuration, if any
        is_override: True when a local override decided the state
    """
    key: str
    enabled: bool
    config: FeatureConfig | None = None
    is_override: bool = False


@dataclass(frozen=True)
class RestrictionSpec:
    """
    Restriction attached to a gated unit.

    The unit is allowed when the feature's enabled state equals
    `requires_enabled`.
    """
    feature_key: str
    requires_enabled: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.feature_key, str) or not self.feature_key:
            raise ValueError("feature_key must be a non-empty string")


ResolvedContext: TypeAlias = tuple[Context, TrackingStrategy]

# (connection) -> (Context, TrackingStrategy), sync or async
ContextResolver: TypeAlias = Callable[
    [HTTPConnection],
    ResolvedContext | Awaitable[ResolvedContext],
]

# (feature, request) -> surface result, sync or async
DenialHandler: TypeAlias = Callable[[Feature, Any], Any]


class FeatureClient(ABC):
    """
    Evaluation contract of the external feature service.

    Implementations:
    - MemoryFeatureClient: In-memory flags (dev/testing)
    - Adapters over a remote flag service
    """

    @abstractmethod
    async def get_feature(
        self,
        key: str,
        context: Context,
        tracking_strategy: TrackingStrategy = TrackingStrategy.DEFAULT,
    ) -> Feature:
        """
        Evaluate a feature for a context.

        Args:
            key: Feature key
            context: Evaluation context of the current request
            tracking_strategy: Whether usage of the feature is reported

        Returns:
            The evaluated feature
        """
        pass
