# catalog.py
"""
Typed cost catalog rows and the immutable snapshot handed to the pricing engine.

Rows are plain frozen dataclasses; nothing here knows about the database or
HTTP. The store builds a ``CostCatalog`` once per request and passes it down.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

import pricing_config as cfg


class PricingValidationError(ValueError):
    """Raised for inputs or catalog selections the engine refuses to price."""


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise PricingValidationError(msg)


class Sidedness(str, Enum):
    SINGLE = "SINGLE"
    DOUBLE = "DOUBLE"

    @property
    def faces(self) -> int:
        return 2 if self is Sidedness.DOUBLE else 1


class LedType(str, Enum):
    INNER = "INNER"   # indoor
    OUTER = "OUTER"   # outdoor


class LedDirection(str, Enum):
    HORIZONTAL = "Horizontal"
    VERTICAL = "Vertical"


@dataclass(frozen=True)
class ProfileCost:
    id: int
    name: str
    depth_cm: Decimal
    sidedness: Sidedness
    price_per_meter: Decimal


@dataclass(frozen=True)
class BackingCost:
    id: int
    material_code: str
    display_name: str
    price_per_m2: Decimal
    led_spacing_cm: Optional[Decimal] = None


@dataclass(frozen=True)
class AdapterPrice:
    id: int
    name: str
    amperage: Decimal
    wattage: Decimal
    price: Decimal

    @property
    def display_name(self) -> str:
        return f"{self.amperage}A ({self.wattage}W) - ${self.price}"


@dataclass(frozen=True)
class SystemSettings:
    cable_fixed_cost: Decimal = cfg.DEFAULT_SETTINGS["cable_fixed_cost"]
    corner_piece_price: Decimal = cfg.DEFAULT_SETTINGS["corner_piece_price"]
    print_cost_per_m2: Decimal = cfg.DEFAULT_SETTINGS["print_cost_per_m2"]
    labor_rate_percentage: Decimal = cfg.DEFAULT_SETTINGS["labor_rate_percentage"]
    profit_margin_percentage: Decimal = cfg.DEFAULT_SETTINGS["profit_margin_percentage"]
    fabric_profit_margin_percentage: Decimal = cfg.DEFAULT_SETTINGS["fabric_profit_margin_percentage"]
    amperes_per_meter: Decimal = cfg.DEFAULT_SETTINGS["amperes_per_meter"]
    led_indoor_price_per_meter: Decimal = cfg.DEFAULT_SETTINGS["led_indoor_price_per_meter"]
    led_outdoor_price_per_meter: Decimal = cfg.DEFAULT_SETTINGS["led_outdoor_price_per_meter"]
    default_led_spacing_cm: Decimal = cfg.DEFAULT_SETTINGS["default_led_spacing_cm"]
    stand_price: Decimal = cfg.DEFAULT_SETTINGS["stand_price"]
    is_wheel_enabled: bool = cfg.DEFAULT_SETTINGS["is_wheel_enabled"]

    def led_price_per_meter(self, led_type: LedType) -> Decimal:
        if led_type is LedType.INNER:
            return self.led_indoor_price_per_meter
        if led_type is LedType.OUTER:
            return self.led_outdoor_price_per_meter
        raise PricingValidationError(f"unknown LED type: {led_type}")


MONEY_SETTINGS = (
    "cable_fixed_cost",
    "corner_piece_price",
    "print_cost_per_m2",
    "labor_rate_percentage",
    "profit_margin_percentage",
    "fabric_profit_margin_percentage",
    "amperes_per_meter",
    "led_indoor_price_per_meter",
    "led_outdoor_price_per_meter",
    "stand_price",
)


def validate_settings(settings: SystemSettings) -> None:
    for name in MONEY_SETTINGS:
        _require(getattr(settings, name) >= 0, f"setting {name} must not be negative")
    _require(settings.default_led_spacing_cm > 0, "default LED spacing must be > 0 cm")


@dataclass(frozen=True)
class CostCatalog:
    settings: SystemSettings
    profiles: Tuple[ProfileCost, ...] = field(default_factory=tuple)
    backings: Tuple[BackingCost, ...] = field(default_factory=tuple)
    adapters: Tuple[AdapterPrice, ...] = field(default_factory=tuple)

    def find_profile(
        self,
        depth_cm: Decimal,
        sidedness: Sidedness,
        profile_id: Optional[int] = None,
    ) -> ProfileCost:
        # An explicit id must still be the row for (depth, sidedness)
        if profile_id is not None:
            row = next((p for p in self.profiles if p.id == profile_id), None)
            _require(row is not None, f"profile not found: id={profile_id}")
            _require(
                row.sidedness is sidedness and row.depth_cm == depth_cm,
                f"profile id={profile_id} is {row.depth_cm}cm {row.sidedness.value.lower()}-sided, "
                f"not {depth_cm}cm {sidedness.value.lower()}-sided",
            )
        else:
            row = next(
                (p for p in self.profiles if p.depth_cm == depth_cm and p.sidedness is sidedness),
                None,
            )
            _require(
                row is not None,
                f"profile not found: {depth_cm}cm {sidedness.value.lower()}-sided",
            )
        _require(row.price_per_meter > 0, f"profile {row.name!r} has no price per meter")
        return row

    def find_backing(self, material_code: str) -> BackingCost:
        row = next((b for b in self.backings if b.material_code == material_code), None)
        _require(row is not None, f"backing material not found: {material_code}")
        _require(row.price_per_m2 > 0, f"backing material {material_code!r} has no price per m2")
        return row


def default_catalog() -> CostCatalog:
    """Catalog built from the seed tables, ids assigned in seed order."""
    return CostCatalog(
        settings=SystemSettings(),
        profiles=tuple(
            ProfileCost(
                id=i,
                name=row["name"],
                depth_cm=row["depth_cm"],
                sidedness=Sidedness(row["sidedness"]),
                price_per_meter=row["price_per_meter"],
            )
            for i, row in enumerate(cfg.DEFAULT_PROFILE_COSTS, start=1)
        ),
        backings=tuple(
            BackingCost(id=i, **row) for i, row in enumerate(cfg.DEFAULT_BACKING_COSTS, start=1)
        ),
        adapters=tuple(
            AdapterPrice(id=i, **row) for i, row in enumerate(cfg.DEFAULT_ADAPTER_PRICES, start=1)
        ),
    )
