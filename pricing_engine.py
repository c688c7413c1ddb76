# pricing_engine.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

import pricing_config as cfg
from adapter_selector import select_adapter
from catalog import (
    CostCatalog,
    LedType,
    Sidedness,
    _require,
    validate_settings,
)
from led_layout import LedLayoutResult, plan_led_layout


@dataclass(frozen=True)
class LightboxInputs:
    width: Decimal
    height: Decimal
    depth: Decimal
    sidedness: Sidedness
    led_type: LedType
    backing_material_code: str
    profile_id: Optional[int] = None
    led_spacing_cm: Optional[Decimal] = None


@dataclass(frozen=True)
class FabricInputs:
    width: Decimal
    height: Decimal
    sidedness: Sidedness
    with_stand: bool = False


@dataclass(frozen=True)
class CalculationBreakdown:
    perimeter: Decimal
    area_m2: Decimal
    profile_cost: Decimal
    backing_cost: Decimal
    print_cost: Decimal
    led_cost: Decimal
    adapter_cost: Decimal
    cable_cost: Decimal
    corner_piece_cost: Decimal
    raw_material_total: Decimal
    labor_cost: Decimal
    labored_total: Decimal
    profit_margin: Decimal
    final_price: Decimal
    selected_layout: LedLayoutResult
    alternative_layout: LedLayoutResult
    led_spacing_cm: Decimal
    adapter_name: str
    required_amperes: Decimal
    selected_amperes: Decimal
    adapter_undersized: bool

    def as_dict(self) -> Dict[str, Any]:
        return {
            "perimeter": round(float(self.perimeter), 4),
            "area_m2": round(float(self.area_m2), 4),
            "profile_cost": _money(self.profile_cost),
            "backing_cost": _money(self.backing_cost),
            "print_cost": _money(self.print_cost),
            "led_cost": _money(self.led_cost),
            "adapter_cost": _money(self.adapter_cost),
            "cable_cost": _money(self.cable_cost),
            "corner_piece_cost": _money(self.corner_piece_cost),
            "raw_material_total": _money(self.raw_material_total),
            "labor_cost": _money(self.labor_cost),
            "labored_total": _money(self.labored_total),
            "profit_margin": _money(self.profit_margin),
            "final_price": _money(self.final_price),
            "selected_layout": self.selected_layout.as_dict(),
            "alternative_layout": self.alternative_layout.as_dict(),
            "led_spacing_cm": float(self.led_spacing_cm),
            "adapter_name": self.adapter_name,
            "required_amperes": round(float(self.required_amperes), 4),
            "selected_amperes": float(self.selected_amperes),
            "adapter_undersized": self.adapter_undersized,
        }


@dataclass(frozen=True)
class FabricBreakdown:
    area_m2: Decimal
    print_cost: Decimal
    stand_cost: Decimal
    raw_material_total: Decimal
    profit_margin: Decimal
    final_price: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {
            "area_m2": round(float(self.area_m2), 4),
            "print_cost": _money(self.print_cost),
            "stand_cost": _money(self.stand_cost),
            "raw_material_total": _money(self.raw_material_total),
            "profit_margin": _money(self.profit_margin),
            "final_price": _money(self.final_price),
        }


def _money(x: Decimal) -> float:
    return round(float(x), 2)


def _validate_dimensions(width: Decimal, height: Decimal) -> None:
    _require(width.is_finite() and width > 0, "width must be > 0")
    _require(height.is_finite() and height > 0, "height must be > 0")


def calculate_lightbox_price(x: LightboxInputs, catalog: CostCatalog) -> CalculationBreakdown:
    settings = catalog.settings

    # ---- Basic validation ----
    _validate_dimensions(x.width, x.height)
    _require(x.depth > 0, "depth must be > 0")
    validate_settings(settings)

    # ---- Geometry (cm in, m / m2 out) ----
    perimeter = 2 * (x.width + x.height) / 100
    area_m2 = (x.width * x.height) / 10000
    faces = x.sidedness.faces

    # ---- Catalog rows ----
    profile = catalog.find_profile(x.depth, x.sidedness, x.profile_id)
    backing = catalog.find_backing(x.backing_material_code)

    profile_cost = perimeter * profile.price_per_meter
    backing_cost = area_m2 * backing.price_per_m2 * faces
    print_cost = area_m2 * settings.print_cost_per_m2 * faces

    # ---- LED layout ----
    if x.led_spacing_cm is not None:
        spacing = x.led_spacing_cm
    elif backing.led_spacing_cm is not None:
        spacing = backing.led_spacing_cm
    else:
        spacing = settings.default_led_spacing_cm

    led_price = settings.led_price_per_meter(x.led_type)
    _require(led_price > 0, f"no LED price per meter configured for {x.led_type.value}")

    plan = plan_led_layout(x.width, x.height, spacing, x.sidedness)
    led_cost = plan.selected.total_led_meters * led_price

    # ---- Adapter (one per box) ----
    selection = select_adapter(
        plan.selected.total_led_meters,
        settings.amperes_per_meter,
        catalog.adapters,
    )
    adapter_cost = selection.adapter.price

    cable_cost = settings.cable_fixed_cost
    corner_piece_cost = settings.corner_piece_price * cfg.CORNER_PIECES_PER_BOX

    raw_material_total = (
        profile_cost
        + backing_cost
        + print_cost
        + led_cost
        + adapter_cost
        + cable_cost
        + corner_piece_cost
    )

    labor_cost = raw_material_total * (settings.labor_rate_percentage / 100)
    labored_total = raw_material_total + labor_cost
    profit_margin = labored_total * (settings.profit_margin_percentage / 100)
    final_price = labored_total + profit_margin

    return CalculationBreakdown(
        perimeter=perimeter,
        area_m2=area_m2,
        profile_cost=profile_cost,
        backing_cost=backing_cost,
        print_cost=print_cost,
        led_cost=led_cost,
        adapter_cost=adapter_cost,
        cable_cost=cable_cost,
        corner_piece_cost=corner_piece_cost,
        raw_material_total=raw_material_total,
        labor_cost=labor_cost,
        labored_total=labored_total,
        profit_margin=profit_margin,
        final_price=final_price,
        selected_layout=plan.selected,
        alternative_layout=plan.alternative,
        led_spacing_cm=spacing,
        adapter_name=selection.adapter.name,
        required_amperes=selection.required_amperes,
        selected_amperes=selection.adapter.amperage,
        adapter_undersized=selection.undersized,
    )


def calculate_fabric_price(x: FabricInputs, catalog: CostCatalog) -> FabricBreakdown:
    """Print-only path: no frame, LED or adapter."""
    settings = catalog.settings

    _validate_dimensions(x.width, x.height)
    validate_settings(settings)
    _require(settings.print_cost_per_m2 > 0, "no print cost per m2 configured")

    area_m2 = (x.width * x.height) / 10000
    print_cost = area_m2 * settings.print_cost_per_m2 * x.sidedness.faces
    profit_margin = print_cost * (settings.fabric_profit_margin_percentage / 100)

    # Stand is sold at list price, outside the margin
    stand_cost = settings.stand_price if x.with_stand else Decimal("0")
    raw_material_total = print_cost + stand_cost

    return FabricBreakdown(
        area_m2=area_m2,
        print_cost=print_cost,
        stand_cost=stand_cost,
        raw_material_total=raw_material_total,
        profit_margin=profit_margin,
        final_price=print_cost + profit_margin + stand_cost,
    )


if __name__ == "__main__":
    from catalog import default_catalog

    inputs = LightboxInputs(
        width=Decimal("100"),
        height=Decimal("70"),
        depth=Decimal("8"),
        sidedness=Sidedness.SINGLE,
        led_type=LedType.INNER,
        backing_material_code="MDF_3MM",
    )

    result = calculate_lightbox_price(inputs, default_catalog())
    print("LAYOUT:", result.selected_layout.as_dict())
    print("ADAPTER:", result.adapter_name)
    print("RAW:", _money(result.raw_material_total))
    print("FINAL:", _money(result.final_price))
