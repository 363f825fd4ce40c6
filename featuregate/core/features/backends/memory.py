"""
In-memory evaluation client for feature flags.

For development and testing. Data is lost on restart.
"""

from dataclasses import dataclass
from typing import Any

from ..context import Context
from ..interfaces import Feature, FeatureClient, FeatureConfig, TrackingStrategy


@dataclass(frozen=True)
class Evaluation:
    """One recorded call to the client."""
    key: str
    context: Context
    tracking_strategy: TrackingStrategy


class MemoryFeatureClient(FeatureClient):
    """
    In-memory feature evaluation.

    Useful for:
    - Development without a remote flag service
    - Unit testing
    - Quick prototyping

    Unknown keys evaluate to disabled. Local overrides take precedence
    over flag values and are reported with `is_override=True`.
    """

    def __init__(self, flags: dict[str, bool] | None = None):
        self._flags: dict[str, bool] = dict(flags or {})
        self._configs: dict[str, FeatureConfig] = {}
        self._overrides: dict[str, bool] = {}
        self.evaluations: list[Evaluation] = []
        self.tracked: list[str] = []

    # ============================================================
    # FLAG OPERATIONS
    # ============================================================

    def set_flag(
        self,
        key: str,
        enabled: bool,
        config: FeatureConfig | None = None,
    ) -> None:
        """Set a flag's state and optional remote config."""
        self._flags[key] = enabled
        if config is None:
            self._configs.pop(key, None)
        else:
            self._configs[key] = config

    def set_override(self, key: str, enabled: bool) -> None:
        """Force a flag on or off locally."""
        self._overrides[key] = enabled

    def remove_override(self, key: str) -> bool:
        """Remove a local override."""
        return self._overrides.pop(key, None) is not None

    # ============================================================
    # EVALUATION
    # ============================================================

    async def get_feature(
        self,
        key: str,
        context: Context,
        tracking_strategy: TrackingStrategy = TrackingStrategy.DEFAULT,
    ) -> Feature:
        """Evaluate a flag and record the call."""
        self.evaluations.append(Evaluation(key, context, tracking_strategy))
        if tracking_strategy != TrackingStrategy.INACTIVE:
            self.tracked.append(key)

        if key in self._overrides:
            return Feature(
                key=key,
                enabled=self._overrides[key],
                config=self._configs.get(key),
                is_override=True,
            )

        return Feature(
            key=key,
            enabled=self._flags.get(key, False),
            config=self._configs.get(key),
        )

    def evaluated_keys(self) -> list[str]:
        """Keys evaluated so far, in call order."""
        return [evaluation.key for evaluation in self.evaluations]

    def clear(self) -> None:
        """Forget recorded evaluations and usage events."""
        self.evaluations.clear()
        self.tracked.clear()

    def __repr__(self) -> str:
        flags: dict[str, Any] = {**self._flags, **self._overrides}
        return f"<MemoryFeatureClient {flags}>"
