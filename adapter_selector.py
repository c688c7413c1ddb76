# adapter_selector.py
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

import pricing_config as cfg
from catalog import AdapterPrice, _require

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdapterSelection:
    adapter: AdapterPrice
    required_amperes: Decimal
    safety_amperes: Decimal
    # True when even the largest catalog adapter is below the safety current
    undersized: bool = False


def select_adapter(
    total_led_meters: Decimal,
    amperes_per_meter: Decimal,
    adapters: Iterable[AdapterPrice],
) -> AdapterSelection:
    # Cheapest first among equal ratings
    catalog = sorted(adapters, key=lambda a: (a.amperage, a.price))
    _require(bool(catalog), "adapter catalog is empty")

    required = total_led_meters * amperes_per_meter
    safety = required * cfg.ADAPTER_SAFETY_FACTOR

    chosen = next((a for a in catalog if a.amperage >= safety), None)
    undersized = False
    if chosen is None:
        # Best effort: hand back the largest unit and flag it
        chosen = next(a for a in catalog if a.amperage == catalog[-1].amperage)
        undersized = True
        logger.warning(
            "No adapter covers %.2fA (required %.2fA); falling back to %s (%sA)",
            safety, required, chosen.name, chosen.amperage,
        )

    _require(chosen.price > 0, f"adapter {chosen.name!r} has no price")

    return AdapterSelection(
        adapter=chosen,
        required_amperes=required,
        safety_amperes=safety,
        undersized=undersized,
    )
