# promotions.py
"""
Prize wheel and single-use discount codes.

One spin per phone number and one redemption per code. Both rules are held by
the store (unique phone, unique code, conditional UPDATE on ``is_used``), so
concurrent requests cannot double-spin or double-redeem.
"""
import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import pricing_config as cfg
from database import CustomerLead, SpinWheelItem, get_or_create_settings

logger = logging.getLogger(__name__)

CODE_ATTEMPTS = 10


class PromotionError(ValueError):
    pass


class PromotionConflict(Exception):
    """A phone already spun or a code already consumed."""


@dataclass(frozen=True)
class SpinResult:
    item_id: int
    label: str
    is_loss: bool
    discount_code: str
    discount_percentage: int


@dataclass(frozen=True)
class CodeCheck:
    code: str
    percentage: int
    owner: str


def normalize_phone(phone: Optional[str]) -> str:
    if not phone:
        return ""
    return "".join(ch for ch in phone if ch.isdigit())


def draw_prize(items: Sequence[SpinWheelItem], rng: random.Random):
    if not items:
        raise PromotionError("The prize wheel has no slices configured.")

    total = sum(float(i.weight) for i in items)
    if total <= 0:
        raise PromotionError("The prize wheel weights must add up to more than zero.")

    roll = rng.random() * total  # [0, total)
    cumulative = 0.0
    for item in items:
        cumulative += float(item.weight)
        if roll < cumulative:
            return item
    # float drift on the last slice
    return items[-1]


def wheel_items(db: Session) -> List[SpinWheelItem]:
    items = db.query(SpinWheelItem).order_by(SpinWheelItem.id).all()
    if not items:
        db.add_all(SpinWheelItem(**row) for row in cfg.DEFAULT_SPIN_WHEEL_ITEMS)
        db.commit()
        items = db.query(SpinWheelItem).order_by(SpinWheelItem.id).all()
    return items


def _code_taken(db: Session, code: str) -> bool:
    return db.query(CustomerLead.id).filter(CustomerLead.discount_code == code).first() is not None


def _new_code(db: Session, prefix: str, rng: random.Random) -> str:
    for _ in range(CODE_ATTEMPTS):
        code = f"{prefix}{rng.randint(1000, 9999)}"
        if not _code_taken(db, code):
            return code
    raise PromotionConflict("Could not allocate a free discount code, try again.")


def spin(db: Session, phone: str, rng: Optional[random.Random] = None) -> SpinResult:
    rng = rng or random.SystemRandom()

    settings = get_or_create_settings(db)
    if not settings.is_wheel_enabled:
        raise PromotionError("The prize wheel is currently disabled.")

    phone = normalize_phone(phone)
    if not phone:
        raise PromotionError("A phone number is required.")

    if db.query(CustomerLead.id).filter(CustomerLead.phone_number == phone).first():
        raise PromotionConflict("This phone number has already participated.")

    won = draw_prize(wheel_items(db), rng)
    code = "" if won.is_loss else _new_code(db, "LUCKY", rng)
    percentage = won.discount_percentage if (not won.is_loss and won.discount_percentage > 0) else 0

    lead = CustomerLead(
        phone_number=phone,
        won_prize_label=won.label,
        discount_code=code or None,
        discount_percentage=percentage,
    )
    db.add(lead)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # Lost a race: either the same phone spun concurrently or the code was taken
        if db.query(CustomerLead.id).filter(CustomerLead.phone_number == phone).first():
            raise PromotionConflict("This phone number has already participated.")
        raise PromotionConflict("Could not allocate a free discount code, try again.")

    logger.info("Spin for %s won %r (code=%s)", phone, won.label, code or "-")
    return SpinResult(
        item_id=won.id,
        label=won.label,
        is_loss=bool(won.is_loss),
        discount_code=code,
        discount_percentage=percentage,
    )


def validate_code(db: Session, code: str, phone: str) -> CodeCheck:
    code = (code or "").strip().upper()
    if not code:
        raise PromotionError("The code must not be empty.")
    phone = normalize_phone(phone)
    if not phone:
        raise PromotionError("A phone number is required.")

    lead = db.query(CustomerLead).filter(CustomerLead.discount_code == code).first()
    if lead is None:
        raise PromotionError("Invalid discount code.")
    # Used codes are rejected before the phone is even looked at
    if lead.is_used:
        raise PromotionConflict("This discount code has already been used.")
    if lead.phone_number and normalize_phone(lead.phone_number) != phone:
        raise PromotionError("This code is assigned to another phone number.")

    return CodeCheck(code=code, percentage=lead.discount_percentage, owner=lead.phone_number or "")


def redeem_code(db: Session, code: str, phone: str) -> CodeCheck:
    check = validate_code(db, code, phone)

    result = db.execute(
        update(CustomerLead)
        .where(CustomerLead.discount_code == check.code, CustomerLead.is_used.is_(False))
        .values(is_used=True)
    )
    if result.rowcount != 1:
        db.rollback()
        raise PromotionConflict("This discount code has already been used.")
    # Caller commits together with the order that consumes the code
    return check


def create_manual_code(
    db: Session,
    percentage: int,
    code: Optional[str] = None,
    phone: Optional[str] = None,
    label: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> CustomerLead:
    if percentage <= 0 or percentage > 100:
        raise PromotionError("The discount percentage must be between 1 and 100.")

    code = (code or "").strip().upper()
    if not code:
        code = _new_code(db, "MANUAL", rng or random.SystemRandom())
    elif _code_taken(db, code):
        raise PromotionConflict("This discount code already exists.")

    lead = CustomerLead(
        phone_number=normalize_phone(phone) or None,
        won_prize_label=(label or "").strip() or "MANUAL",
        discount_code=code,
        discount_percentage=percentage,
        is_used=False,
    )
    db.add(lead)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise PromotionConflict("This discount code or phone number already exists.")
    db.refresh(lead)
    return lead
