# led_layout.py
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

import pricing_config as cfg
from catalog import LedDirection, Sidedness, _require


@dataclass(frozen=True)
class LedLayoutResult:
    direction: LedDirection
    strip_count: int
    strip_length_m: Decimal
    total_led_meters: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "strip_count": self.strip_count,
            "strip_length_m": round(float(self.strip_length_m), 4),
            "total_led_meters": round(float(self.total_led_meters), 4),
        }


@dataclass(frozen=True)
class LedLayoutPlan:
    selected: LedLayoutResult
    alternative: LedLayoutResult


def _strip_count(span_cm: Decimal, spacing_cm: Decimal) -> int:
    # First strip sits on the edge margin; one more per full spacing step
    usable = span_cm - (2 * cfg.LED_EDGE_MARGIN_CM)
    return max(1, math.floor(usable / spacing_cm) + 1)


def layout_for_direction(
    direction: LedDirection,
    width_cm: Decimal,
    height_cm: Decimal,
    spacing_cm: Decimal,
    sidedness: Sidedness,
) -> LedLayoutResult:
    """
    Horizontal strips run along the width and are stacked along the height;
    vertical is the same with the axes swapped.
    """
    _require(spacing_cm > 0, "LED spacing must be > 0 cm")

    if direction is LedDirection.HORIZONTAL:
        run_cm, stack_cm = width_cm, height_cm
    else:
        run_cm, stack_cm = height_cm, width_cm

    strips = _strip_count(stack_cm, spacing_cm)
    strip_length_m = max(Decimal("0"), run_cm - cfg.LED_LENGTH_INSET_CM) / 100

    faces = sidedness.faces
    return LedLayoutResult(
        direction=direction,
        strip_count=strips * faces,
        strip_length_m=strip_length_m,
        total_led_meters=strips * strip_length_m * faces,
    )


def plan_led_layout(
    width_cm: Decimal,
    height_cm: Decimal,
    spacing_cm: Decimal,
    sidedness: Sidedness,
) -> LedLayoutPlan:
    _require(width_cm > 0, "width must be > 0")
    _require(height_cm > 0, "height must be > 0")

    vertical = layout_for_direction(LedDirection.VERTICAL, width_cm, height_cm, spacing_cm, sidedness)
    horizontal = layout_for_direction(LedDirection.HORIZONTAL, width_cm, height_cm, spacing_cm, sidedness)

    # Fewer meters means cheaper LED and a smaller adapter; vertical wins ties
    if vertical.total_led_meters <= horizontal.total_led_meters:
        return LedLayoutPlan(selected=vertical, alternative=horizontal)
    return LedLayoutPlan(selected=horizontal, alternative=vertical)
