# orders.py
import base64
import hmac
import logging
import secrets
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from catalog import CostCatalog
from database import Order
from pricing_engine import (
    FabricInputs,
    LightboxInputs,
    calculate_fabric_price,
    calculate_lightbox_price,
)
from promotions import redeem_code

logger = logging.getLogger(__name__)

ACCESS_CODE_BYTES = 16
ACCESS_CODE_KEY = "accessCode"


class OrderError(ValueError):
    pass


class OrderStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    SHIPPED = "Shipped"
    CANCELLED = "Cancelled"


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.COMPLETED, OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


def generate_access_code() -> str:
    raw = secrets.token_bytes(ACCESS_CODE_BYTES)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def access_code_matches(order: Order, code: Optional[str]) -> bool:
    stored = (order.configuration or {}).get(ACCESS_CODE_KEY)
    if not stored or not code:
        return False
    return hmac.compare_digest(stored.encode("utf-8"), code.encode("utf-8"))


def _fmt_cm(x: Decimal) -> str:
    return format(x.normalize(), "f")


def create_order(
    db: Session,
    *,
    customer_name: str,
    customer_phone: str,
    catalog: CostCatalog,
    lightbox: Optional[LightboxInputs] = None,
    fabric: Optional[FabricInputs] = None,
    customer_email: Optional[str] = None,
    discount_code: Optional[str] = None,
    extra_configuration: Optional[Dict[str, Any]] = None,
) -> Order:
    """
    Price is always recomputed here from the current catalog; whatever the
    client showed is ignored. The breakdown is stored as-is and never
    recomputed after this point.
    """
    if not (customer_name or "").strip() or not (customer_phone or "").strip():
        raise OrderError("Customer name and phone are required.")
    if (lightbox is None) == (fabric is None):
        raise OrderError("An order needs exactly one of a lightbox or a fabric configuration.")

    if lightbox is not None:
        breakdown = calculate_lightbox_price(lightbox, catalog)
        configuration: Dict[str, Any] = {
            "type": "LIGHTBOX",
            "width": float(lightbox.width),
            "height": float(lightbox.height),
            "depth": float(lightbox.depth),
            "profile": lightbox.sidedness.value,
            "ledType": lightbox.led_type.value,
            "backplate": lightbox.backing_material_code,
            "profileId": lightbox.profile_id,
            "ledSpacing": float(breakdown.led_spacing_cm),
        }
        dims = f"{_fmt_cm(lightbox.width)}x{_fmt_cm(lightbox.height)}"
    else:
        breakdown = calculate_fabric_price(fabric, catalog)
        configuration = {
            "type": "FABRIC_ONLY",
            "width": float(fabric.width),
            "height": float(fabric.height),
            "profile": fabric.sidedness.value,
            "hasFeet": fabric.with_stand,
        }
        dims = f"{_fmt_cm(fabric.width)}x{_fmt_cm(fabric.height)}"

    if extra_configuration:
        for key, value in extra_configuration.items():
            configuration.setdefault(key, value)

    price = breakdown.final_price
    percentage = 0
    code = None
    if discount_code:
        check = redeem_code(db, discount_code, customer_phone)
        code, percentage = check.code, check.percentage
        price = price * (100 - percentage) / 100

    configuration[ACCESS_CODE_KEY] = generate_access_code()

    order = Order(
        customer_name=customer_name.strip(),
        customer_email=(customer_email or "").strip() or None,
        customer_phone=customer_phone.strip(),
        dimensions=dims,
        price=price.quantize(Decimal("0.01")),
        status=OrderStatus.PENDING.value,
        configuration=configuration,
        cost_details=breakdown.as_dict(),
        discount_code=code,
        discount_percentage=percentage,
    )
    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info("Order %s created: %s %s", order.id, configuration["type"], order.price)
    return order


def update_status(db: Session, order: Order, status: OrderStatus) -> Order:
    current = OrderStatus(order.status)
    if status == current:
        return order
    if status not in ALLOWED_TRANSITIONS[current]:
        raise OrderError(f"Cannot move an order from {current.value} to {status.value}.")

    order.status = status.value
    db.commit()
    logger.info("Order %s: %s -> %s", order.id, current.value, status.value)
    return order
