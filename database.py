# database.py
import os
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    JSON,
    Numeric,
    String,
    create_engine,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

import pricing_config as cfg
from catalog import (
    AdapterPrice,
    BackingCost,
    CostCatalog,
    ProfileCost,
    Sidedness,
    SystemSettings,
)

# ----------------------------
# Engine + session
# ----------------------------
DATABASE_URL = os.environ.get("DATABASE_URL", "")
Base = declarative_base()
engine = create_engine(DATABASE_URL, pool_pre_ping=True) if DATABASE_URL else None
SessionLocal = sessionmaker(bind=engine) if engine else None

SETTINGS_ROW_ID = 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------
# Catalog tables
# ----------------------------
class ProfileCostRow(Base):
    __tablename__ = "profile_costs"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, default="")
    depth_cm = Column(Numeric(8, 2), nullable=False)
    sidedness = Column(String, nullable=False)  # SINGLE / DOUBLE
    price_per_meter = Column(Numeric(12, 4), nullable=False)


class BackingCostRow(Base):
    __tablename__ = "backing_costs"

    id = Column(Integer, primary_key=True)
    material_code = Column(String, unique=True, nullable=False)
    display_name = Column(String, nullable=False, default="")
    price_per_m2 = Column(Numeric(12, 4), nullable=False)
    led_spacing_cm = Column(Numeric(8, 2), nullable=True)


class AdapterPriceRow(Base):
    __tablename__ = "adapter_prices"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    amperage = Column(Numeric(8, 2), nullable=False)
    wattage = Column(Numeric(8, 2), nullable=False)
    price = Column(Numeric(12, 4), nullable=False)


class SystemSettingsRow(Base):
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True)
    cable_fixed_cost = Column(Numeric(12, 4), nullable=False)
    corner_piece_price = Column(Numeric(12, 4), nullable=False)
    print_cost_per_m2 = Column(Numeric(12, 4), nullable=False)
    labor_rate_percentage = Column(Numeric(8, 4), nullable=False)
    profit_margin_percentage = Column(Numeric(8, 4), nullable=False)
    fabric_profit_margin_percentage = Column(Numeric(8, 4), nullable=False)
    amperes_per_meter = Column(Numeric(8, 4), nullable=False)
    led_indoor_price_per_meter = Column(Numeric(12, 4), nullable=False)
    led_outdoor_price_per_meter = Column(Numeric(12, 4), nullable=False)
    default_led_spacing_cm = Column(Numeric(8, 2), nullable=False)
    stand_price = Column(Numeric(12, 4), nullable=False)
    is_wheel_enabled = Column(Boolean, nullable=False, default=True)


# ----------------------------
# Orders + promotions
# ----------------------------
class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    customer_name = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)

    dimensions = Column(String, nullable=False, default="")  # "WxH"
    price = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False, default="Pending")

    configuration = Column(JSON, nullable=False)   # what the customer configured + accessCode
    cost_details = Column(JSON, nullable=False)    # breakdown frozen at order time

    discount_code = Column(String, nullable=True)
    discount_percentage = Column(Integer, nullable=False, default=0)


class CustomerLead(Base):
    __tablename__ = "customer_leads"

    id = Column(Integer, primary_key=True)
    # NULL for manual codes; unique otherwise so a phone can only spin once
    phone_number = Column(String, unique=True, nullable=True)
    won_prize_label = Column(String, nullable=False, default="")
    discount_code = Column(String, unique=True, nullable=True)
    discount_percentage = Column(Integer, nullable=False, default=0)
    is_used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class SpinWheelItem(Base):
    __tablename__ = "spin_wheel_items"

    id = Column(Integer, primary_key=True)
    label = Column(String, nullable=False)
    discount_percentage = Column(Integer, nullable=False, default=0)
    weight = Column(Float, nullable=False, default=0.0)
    color_hex = Column(String, nullable=False, default="#ffffff")
    is_loss = Column(Boolean, nullable=False, default=False)


def init_db() -> None:
    if engine:
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()
        try:
            seed_catalog(db)
            get_or_create_settings(db)
        finally:
            db.close()


# ----------------------------
# Seeds
# ----------------------------
def seed_catalog(db: Session) -> None:
    """Fill empty catalog tables with the defaults from pricing_config."""
    if not db.query(ProfileCostRow).first():
        db.add_all(ProfileCostRow(**row) for row in cfg.DEFAULT_PROFILE_COSTS)
    if not db.query(BackingCostRow).first():
        db.add_all(BackingCostRow(**row) for row in cfg.DEFAULT_BACKING_COSTS)
    if not db.query(AdapterPriceRow).first():
        db.add_all(AdapterPriceRow(**row) for row in cfg.DEFAULT_ADAPTER_PRICES)
    db.commit()


def get_or_create_settings(db: Session) -> SystemSettingsRow:
    row = db.get(SystemSettingsRow, SETTINGS_ROW_ID)
    if row is None:
        db.add(SystemSettingsRow(id=SETTINGS_ROW_ID, **cfg.DEFAULT_SETTINGS))
        try:
            db.commit()
        except IntegrityError:
            # Another request created the row first
            db.rollback()
        row = db.get(SystemSettingsRow, SETTINGS_ROW_ID)
    return row


def update_settings(db: Session, values: dict) -> SystemSettingsRow:
    row = get_or_create_settings(db)
    for key, value in values.items():
        if key == "id" or not hasattr(SystemSettingsRow, key):
            continue
        setattr(row, key, value)
    row.id = SETTINGS_ROW_ID
    db.commit()
    return row


# ----------------------------
# Snapshot for the pricing engine
# ----------------------------
def _dec(x) -> Decimal:
    return x if isinstance(x, Decimal) else Decimal(str(x))


def settings_snapshot(row: SystemSettingsRow) -> SystemSettings:
    values = {name: _dec(getattr(row, name)) for name in cfg.DEFAULT_SETTINGS if name != "is_wheel_enabled"}
    return SystemSettings(is_wheel_enabled=bool(row.is_wheel_enabled), **values)


def load_catalog(db: Session) -> CostCatalog:
    settings = settings_snapshot(get_or_create_settings(db))

    profiles = tuple(
        ProfileCost(
            id=p.id,
            name=p.name,
            depth_cm=_dec(p.depth_cm),
            sidedness=Sidedness(p.sidedness),
            price_per_meter=_dec(p.price_per_meter),
        )
        for p in db.query(ProfileCostRow).order_by(ProfileCostRow.id)
    )
    backings = tuple(
        BackingCost(
            id=b.id,
            material_code=b.material_code,
            display_name=b.display_name,
            price_per_m2=_dec(b.price_per_m2),
            led_spacing_cm=_dec(b.led_spacing_cm) if b.led_spacing_cm is not None else None,
        )
        for b in db.query(BackingCostRow).order_by(BackingCostRow.id)
    )
    adapters = tuple(
        AdapterPrice(
            id=a.id,
            name=a.name,
            amperage=_dec(a.amperage),
            wattage=_dec(a.wattage),
            price=_dec(a.price),
        )
        for a in db.query(AdapterPriceRow).order_by(AdapterPriceRow.amperage)
    )
    return CostCatalog(settings=settings, profiles=profiles, backings=backings, adapters=adapters)
