"""
Grid configuration, populated once from policy values.

The policy store itself lives outside the engine. It hands over a flat mapping
of dotted keys ("grid.default_columns", ...) which is validated here and
turned into a frozen GridConfig; nothing downstream asks whether a setting is
present.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from grid_types import Constraints, ExpandMode, ReflowStrategy

logger = logging.getLogger(__name__)

ITERATION_CAP = 100
"""Default upper bound on reflow relaxation passes."""


class PolicyError(ValueError):
    """A policy value failed validation."""


@dataclass(frozen=True)
class CellMetrics:
    """Pixel geometry of one grid cell."""

    container_width: float
    columns: int
    row_height: float = 60
    gap: float = 16

    @property
    def cell_width(self) -> float:
        return self.container_width / self.columns

    @property
    def cell_height(self) -> float:
        return self.row_height + self.gap

    def to_cell(self, local_x: float, local_y: float) -> tuple[int, int]:
        """Floor a local pixel position to the cell under it, clamped at 0."""
        return (
            max(0, int(local_x // self.cell_width)),
            max(0, int(local_y // self.cell_height)),
        )

    def nearest_cell(self, local_x: float, local_y: float) -> tuple[int, int]:
        """Round a local pixel position to the nearest cell, halves rounding up, clamped at 0."""
        return (
            max(0, math.floor(local_x / self.cell_width + 0.5)),
            max(0, math.floor(local_y / self.cell_height + 0.5)),
        )


@dataclass(frozen=True)
class GridConfig:
    """Settings governing engine behavior."""

    columns: int = 24
    default_constraints: Constraints = field(default_factory=Constraints)
    reflow_enabled: bool = False
    reflow_strategy: ReflowStrategy = ReflowStrategy.PUSH_DOWN
    live_preview: bool = False
    expand_enabled: bool = True
    expand_mode: ExpandMode = ExpandMode.REFLOW
    expand_target_rows: int = 8
    expand_full_width: bool = True
    row_height: int = 60
    gap: int = 16
    max_reflow_iterations: int = ITERATION_CAP

    @property
    def live_preview_active(self) -> bool:
        """Live preview only makes sense when drops reflow."""
        return self.reflow_enabled and self.live_preview

    def metrics(self, container_width: float, columns: int | None = None) -> CellMetrics:
        return CellMetrics(
            container_width, columns or self.columns, self.row_height, self.gap
        )

    @classmethod
    def from_policies(cls, policies: Mapping[str, Any]) -> GridConfig:
        """
        Build a config from dotted policy keys.

        Missing keys take their defaults, unknown keys are ignored.

        Raises:
            PolicyError: If a supplied value fails validation
        """
        values: dict[str, Any] = {}
        constraint_values: dict[str, int] = {}

        for key, value in policies.items():
            entry = POLICY_FIELDS.get(key)
            if entry is None:
                logger.debug("from_policies: ignoring unknown policy %s", key)
                continue
            attr, validate, accepted = entry
            if not validate(value):
                raise PolicyError(
                    f"Invalid value for policy '{key}': {value!r}\n"
                    f"  Accepted: {accepted}"
                )
            if attr.startswith("constraints."):
                constraint_values[attr.split(".", 1)[1]] = value
            elif attr == "reflow_strategy":
                values[attr] = ReflowStrategy(value)
            elif attr == "expand_mode":
                values[attr] = ExpandMode(value)
            else:
                values[attr] = value

        constraints = Constraints(**constraint_values)
        if constraints.min_w > constraints.max_w or constraints.min_h > constraints.max_h:
            raise PolicyError(
                f"Inconsistent default constraints: {constraints}\n"
                f"  Minimums must not exceed maximums"
            )
        return cls(default_constraints=constraints, **values)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _int_range(lo: int, hi: int | None = None) -> Callable[[Any], bool]:
    return lambda v: _is_int(v) and v >= lo and (hi is None or v <= hi)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


# policy key -> (config attribute, validator, human readable accepted values)
POLICY_FIELDS: dict[str, tuple[str, Callable[[Any], bool], str]] = {
    "grid.default_columns": ("columns", _int_range(1, 96), "integer 1..96"),
    "grid.default_min_w": ("constraints.min_w", _int_range(1), "integer >= 1"),
    "grid.default_min_h": ("constraints.min_h", _int_range(1), "integer >= 1"),
    "grid.default_max_w": ("constraints.max_w", _int_range(1), "integer >= 1"),
    "grid.default_max_h": ("constraints.max_h", _int_range(1), "integer >= 1"),
    "grid.reflow_on_drag_enabled": ("reflow_enabled", _is_bool, "true or false"),
    "grid.reflow_strategy": (
        "reflow_strategy",
        lambda v: v in [s.value for s in ReflowStrategy],
        " | ".join(s.value for s in ReflowStrategy),
    ),
    "grid.reflow_live_preview": ("live_preview", _is_bool, "true or false"),
    "grid.expand_enabled": ("expand_enabled", _is_bool, "true or false"),
    "grid.expand_mode": (
        "expand_mode",
        lambda v: v in [m.value for m in ExpandMode],
        " | ".join(m.value for m in ExpandMode),
    ),
    "grid.expand_target_rows": ("expand_target_rows", _int_range(1, 100), "integer 1..100"),
    "grid.expand_target_full_width": ("expand_full_width", _is_bool, "true or false"),
    "grid.row_height": ("row_height", _int_range(1), "integer >= 1"),
    "grid.gap": ("gap", _int_range(0), "integer >= 0"),
    "grid.reflow_max_iterations": ("max_reflow_iterations", _int_range(1), "integer >= 1"),
}
