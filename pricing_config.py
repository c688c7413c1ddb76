# pricing_config.py
from decimal import Decimal

# Fixed layout geometry (cm)
LED_EDGE_MARGIN_CM = Decimal("5")
LED_LENGTH_INSET_CM = Decimal("2")  # 1 cm per side, keeps strip ends off the frame

# Adapter sizing headroom (required amps * 1.2)
ADAPTER_SAFETY_FACTOR = Decimal("1.2")

CORNER_PIECES_PER_BOX = 4

# ============================================================
# Defaults for the settings row (id=1), created lazily
# ============================================================
DEFAULT_SETTINGS = {
    "cable_fixed_cost": Decimal("6.00"),
    "corner_piece_price": Decimal("0.70"),
    "print_cost_per_m2": Decimal("10.00"),
    "labor_rate_percentage": Decimal("30.0"),
    "profit_margin_percentage": Decimal("30.0"),
    "fabric_profit_margin_percentage": Decimal("30.0"),
    "amperes_per_meter": Decimal("1.0"),       # 50cm strip = 0.5A
    "led_indoor_price_per_meter": Decimal("2.00"),
    "led_outdoor_price_per_meter": Decimal("3.00"),
    "default_led_spacing_cm": Decimal("15.0"),
    "stand_price": Decimal("50.00"),
    "is_wheel_enabled": True,
}

# ============================================================
# Catalog seeds (only inserted into empty tables)
# ============================================================
DEFAULT_PROFILE_COSTS = [
    {"name": "4.5cm Single", "depth_cm": Decimal("4.5"), "sidedness": "SINGLE", "price_per_meter": Decimal("4.30")},
    {"name": "8cm Single",   "depth_cm": Decimal("8"),   "sidedness": "SINGLE", "price_per_meter": Decimal("5.00")},
    {"name": "10cm Single",  "depth_cm": Decimal("10"),  "sidedness": "SINGLE", "price_per_meter": Decimal("7.00")},
    {"name": "12cm Single",  "depth_cm": Decimal("12"),  "sidedness": "SINGLE", "price_per_meter": Decimal("11.00")},
    {"name": "8cm Double",   "depth_cm": Decimal("8"),   "sidedness": "DOUBLE", "price_per_meter": Decimal("6.00")},
    {"name": "10cm Double",  "depth_cm": Decimal("10"),  "sidedness": "DOUBLE", "price_per_meter": Decimal("10.00")},
    {"name": "12cm Double",  "depth_cm": Decimal("12"),  "sidedness": "DOUBLE", "price_per_meter": Decimal("12.00")},
]

DEFAULT_BACKING_COSTS = [
    {"material_code": "MDF_3MM",      "display_name": "3 MM MDF",      "price_per_m2": Decimal("4.00"),  "led_spacing_cm": None},
    {"material_code": "MDF_5MM",      "display_name": "5 MM MDF",      "price_per_m2": Decimal("6.50"),  "led_spacing_cm": None},
    {"material_code": "DEKOTA_4_5MM", "display_name": "4.5 MM DEKOTA", "price_per_m2": Decimal("6.00"),  "led_spacing_cm": None},
    {"material_code": "KOMPOZIT_4MM", "display_name": "COMPOSITE",     "price_per_m2": Decimal("15.00"), "led_spacing_cm": None},
]

DEFAULT_ADAPTER_PRICES = [
    {"name": "3A Adapter",    "amperage": Decimal("3"),    "wattage": Decimal("36"),  "price": Decimal("7.60")},
    {"name": "5A Adapter",    "amperage": Decimal("5"),    "wattage": Decimal("60"),  "price": Decimal("9.40")},
    {"name": "10A Adapter",   "amperage": Decimal("10"),   "wattage": Decimal("120"), "price": Decimal("13.20")},
    {"name": "12.5A Adapter", "amperage": Decimal("12.5"), "wattage": Decimal("150"), "price": Decimal("15.40")},
    {"name": "16.5A Adapter", "amperage": Decimal("16.5"), "wattage": Decimal("198"), "price": Decimal("21.00")},
    {"name": "20A Adapter",   "amperage": Decimal("20"),   "wattage": Decimal("240"), "price": Decimal("22.80")},
    {"name": "30A Adapter",   "amperage": Decimal("30"),   "wattage": Decimal("360"), "price": Decimal("25.20")},
]

# Weight is relative; it does not need to sum to 100
DEFAULT_SPIN_WHEEL_ITEMS = [
    {"label": "5% OFF",    "discount_percentage": 5,  "weight": 30, "color_hex": "#8B5CF6", "is_loss": False},
    {"label": "10% OFF",   "discount_percentage": 10, "weight": 20, "color_hex": "#DB2777", "is_loss": False},
    {"label": "15% OFF",   "discount_percentage": 15, "weight": 10, "color_hex": "#10B981", "is_loss": False},
    {"label": "PASS",      "discount_percentage": 0,  "weight": 20, "color_hex": "#6B7280", "is_loss": True},
    {"label": "20% OFF",   "discount_percentage": 20, "weight": 5,  "color_hex": "#F59E0B", "is_loss": False},
    {"label": "TRY AGAIN", "discount_percentage": 0,  "weight": 15, "color_hex": "#EF4444", "is_loss": True},
]
