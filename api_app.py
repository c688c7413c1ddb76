import logging
import os
from dataclasses import asdict
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

# Email (SendGrid)
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

import database
from catalog import LedType, Sidedness
from orders import OrderStatus, access_code_matches, create_order, update_status
from pricing_engine import (
    FabricInputs,
    LightboxInputs,
    calculate_fabric_price,
    calculate_lightbox_price,
)
from promotions import (
    PromotionConflict,
    create_manual_code,
    spin,
    validate_code,
    wheel_items,
)


# ----------------------------
# App + config
# ----------------------------
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Lightbox Pricing API", version="1.0.0")

ALLOWED_ORIGINS = [
    o.strip()
    for o in os.environ.get("ALLOWED_ORIGINS", "http://localhost:8501").split(",")
    if o.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Admin endpoints (orders list, settings, discount codes) require this key
API_KEY = os.environ.get("API_KEY", "")

APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:8501")

# Email config
SENDGRID_API_KEY = os.environ.get("SENDGRID_API_KEY", "")
FROM_EMAIL = os.environ.get("FROM_EMAIL", "orders@example.com")

database.init_db()


# ----------------------------
# Helpers
# ----------------------------
def _is_admin(x_api_key: Optional[str]) -> bool:
    return bool(API_KEY) and x_api_key == API_KEY


def _require_api_key(x_api_key: Optional[str]) -> None:
    if API_KEY:
        if not x_api_key or x_api_key != API_KEY:
            raise HTTPException(status_code=401, detail="Unauthorized")


def _send_email(to_email: str, subject: str, html: str) -> None:
    # Allow running without email configured
    if not SENDGRID_API_KEY:
        logger.info("SENDGRID_API_KEY not set; skipping email to %s", to_email)
        return

    msg = Mail(
        from_email=FROM_EMAIL,
        to_emails=to_email,
        subject=subject,
        html_content=html,
    )
    SendGridAPIClient(SENDGRID_API_KEY).send(msg)


def get_db():
    if not database.SessionLocal:
        raise HTTPException(status_code=500, detail="DB not configured (missing DATABASE_URL).")

    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.exception_handler(ValueError)
async def _validation_failed(_request, exc: ValueError):
    # Covers PricingValidationError, PromotionError and OrderError
    return PlainTextResponse(str(exc), status_code=400)


@app.exception_handler(PromotionConflict)
async def _promotion_conflict(_request, exc: PromotionConflict):
    return PlainTextResponse(str(exc), status_code=409)


# ----------------------------
# Request models
# ----------------------------
class CalculationRequest(BaseModel):
    width: Decimal
    height: Decimal
    depth: Decimal
    profile: Sidedness = Sidedness.SINGLE
    led_type: LedType = LedType.INNER
    backplate: str
    profile_id: Optional[int] = None
    led_spacing_cm: Optional[Decimal] = None

    def to_inputs(self) -> LightboxInputs:
        return LightboxInputs(
            width=self.width,
            height=self.height,
            depth=self.depth,
            sidedness=self.profile,
            led_type=self.led_type,
            backing_material_code=self.backplate,
            profile_id=self.profile_id,
            led_spacing_cm=self.led_spacing_cm,
        )


class FabricRequest(BaseModel):
    width: Decimal
    height: Decimal
    profile: Sidedness = Sidedness.SINGLE
    has_feet: bool = False

    def to_inputs(self) -> FabricInputs:
        return FabricInputs(
            width=self.width,
            height=self.height,
            sidedness=self.profile,
            with_stand=self.has_feet,
        )


class SettingsUpdate(BaseModel):
    cable_fixed_cost: Optional[Decimal] = None
    corner_piece_price: Optional[Decimal] = None
    print_cost_per_m2: Optional[Decimal] = None
    labor_rate_percentage: Optional[Decimal] = None
    profit_margin_percentage: Optional[Decimal] = None
    fabric_profit_margin_percentage: Optional[Decimal] = None
    amperes_per_meter: Optional[Decimal] = None
    led_indoor_price_per_meter: Optional[Decimal] = None
    led_outdoor_price_per_meter: Optional[Decimal] = None
    default_led_spacing_cm: Optional[Decimal] = None
    stand_price: Optional[Decimal] = None
    is_wheel_enabled: Optional[bool] = None


class OrderCreateRequest(BaseModel):
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    discount_code: Optional[str] = None
    lightbox: Optional[CalculationRequest] = None
    fabric: Optional[FabricRequest] = None
    notes: Dict[str, Any] = Field(default_factory=dict)  # color, etc.; stored with the configuration


class StatusUpdate(BaseModel):
    status: OrderStatus


class SpinRequest(BaseModel):
    phone_number: str


class ValidateRequest(BaseModel):
    code: str
    phone_number: str


class DiscountCodeCreate(BaseModel):
    discount_percentage: int
    code: Optional[str] = None
    phone_number: Optional[str] = None
    label: Optional[str] = None


# ----------------------------
# Serializers
# ----------------------------
def _settings_out(row: database.SystemSettingsRow) -> Dict[str, Any]:
    snap = database.settings_snapshot(row)
    out: Dict[str, Any] = {"id": row.id}
    for name, value in asdict(snap).items():
        out[name] = value if isinstance(value, bool) else float(value)
    return out


def _order_out(o: database.Order) -> Dict[str, Any]:
    out = {
        "id": o.id,
        "customer_name": o.customer_name,
        "customer_email": o.customer_email,
        "customer_phone": o.customer_phone,
        "dimensions": o.dimensions,
        "price": float(o.price),
        "status": o.status,
        "discount_code": o.discount_code,
        "discount_percentage": o.discount_percentage,
        "cost_details": o.cost_details,
        "configuration": o.configuration,
        "created_at": o.created_at.isoformat() if o.created_at else None,
    }
    return out


# ----------------------------
# Routes
# ----------------------------
@app.get("/health")
def health():
    return {"ok": True}


@app.post("/calculate")
def calculate(req: CalculationRequest, db=Depends(get_db)):
    catalog = database.load_catalog(db)
    return calculate_lightbox_price(req.to_inputs(), catalog).as_dict()


@app.post("/calculate/fabric")
def calculate_fabric(req: FabricRequest, db=Depends(get_db)):
    catalog = database.load_catalog(db)
    return calculate_fabric_price(req.to_inputs(), catalog).as_dict()


@app.get("/catalog")
def get_catalog(db=Depends(get_db)):
    catalog = database.load_catalog(db)
    return {
        "profiles": [
            {
                "id": p.id,
                "name": p.name,
                "depth_cm": float(p.depth_cm),
                "sidedness": p.sidedness.value,
                "price_per_meter": float(p.price_per_meter),
            }
            for p in catalog.profiles
        ],
        "backings": [
            {
                "id": b.id,
                "material_code": b.material_code,
                "display_name": b.display_name,
                "price_per_m2": float(b.price_per_m2),
                "led_spacing_cm": float(b.led_spacing_cm) if b.led_spacing_cm is not None else None,
            }
            for b in catalog.backings
        ],
        "adapters": [
            {
                "id": a.id,
                "name": a.name,
                "amperage": float(a.amperage),
                "wattage": float(a.wattage),
                "price": float(a.price),
            }
            for a in catalog.adapters
        ],
        "settings": _settings_out(database.get_or_create_settings(db)),
    }


@app.get("/settings")
def get_settings(db=Depends(get_db)):
    return _settings_out(database.get_or_create_settings(db))


@app.post("/settings")
def post_settings(
    req: SettingsUpdate,
    x_api_key: Optional[str] = Header(default=None),
    db=Depends(get_db),
):
    _require_api_key(x_api_key)
    values = req.model_dump(exclude_none=True)
    for name, value in values.items():
        if name == "default_led_spacing_cm" and value <= 0:
            raise HTTPException(status_code=400, detail="default_led_spacing_cm must be > 0")
        if isinstance(value, Decimal) and value < 0:
            raise HTTPException(status_code=400, detail=f"{name} must not be negative")
    row = database.update_settings(db, values)
    logger.info("Settings updated: %s", ", ".join(sorted(values)) or "(no fields)")
    return _settings_out(row)


@app.post("/orders", status_code=201)
def post_order(req: OrderCreateRequest, db=Depends(get_db)):
    """
    Server recomputes pricing from the stored catalog (do not trust client).
    The access code in the response is the only way for the customer to view
    the order later without an admin key.
    """
    catalog = database.load_catalog(db)
    order = create_order(
        db,
        customer_name=req.customer_name,
        customer_phone=req.customer_phone,
        customer_email=req.customer_email,
        catalog=catalog,
        lightbox=req.lightbox.to_inputs() if req.lightbox else None,
        fabric=req.fabric.to_inputs() if req.fabric else None,
        discount_code=req.discount_code,
        extra_configuration=req.notes,
    )

    access_code = order.configuration["accessCode"]
    link = f"{APP_BASE_URL}/?order_id={order.id}&code={access_code}"

    # Order is already committed; a failed confirmation must not hide the link
    if order.customer_email:
        try:
            _send_email(
                to_email=order.customer_email,
                subject="Lightbox order received",
                html=f"""
                <p>Thanks, we received your order.</p>
                <p><b>Order ID:</b> {order.id}</p>
                <p><b>Size:</b> {order.dimensions} cm</p>
                <p><b>Total:</b> ${float(order.price):.2f}</p>
                <p>Track your order here: <a href="{link}">{link}</a></p>
                """,
            )
        except Exception:
            logger.exception("Confirmation email for order %s failed", order.id)

    out = _order_out(order)
    out["access_code"] = access_code
    out["access_link"] = link
    return out


@app.get("/orders")
def list_orders(
    limit: int = Query(default=50, ge=1, le=500),
    x_api_key: Optional[str] = Header(default=None),
    db=Depends(get_db),
):
    _require_api_key(x_api_key)
    rows = (
        db.query(database.Order)
        .order_by(database.Order.created_at.desc(), database.Order.id.desc())
        .limit(limit)
        .all()
    )
    return {"orders": [_order_out(o) for o in rows]}


@app.get("/orders/{order_id}")
def get_order(
    order_id: int,
    code: Optional[str] = None,
    x_api_key: Optional[str] = Header(default=None),
    db=Depends(get_db),
):
    o = db.get(database.Order, order_id)
    if not o:
        raise HTTPException(status_code=404, detail="Order not found")

    if _is_admin(x_api_key):
        return _order_out(o)
    if not access_code_matches(o, code):
        # Same answer as a missing order so ids cannot be probed
        raise HTTPException(status_code=404, detail="Order not found")

    # Customers never see our cost side
    out = _order_out(o)
    out.pop("cost_details", None)
    return out


@app.put("/orders/{order_id}/status")
def put_order_status(
    order_id: int,
    req: StatusUpdate,
    x_api_key: Optional[str] = Header(default=None),
    db=Depends(get_db),
):
    _require_api_key(x_api_key)
    o = db.get(database.Order, order_id)
    if not o:
        raise HTTPException(status_code=404, detail="Order not found")
    return _order_out(update_status(db, o, req.status))


@app.get("/spin-wheel/config")
def get_wheel(db=Depends(get_db)):
    settings = database.get_or_create_settings(db)
    return {
        "is_enabled": bool(settings.is_wheel_enabled),
        "items": [
            {
                "id": i.id,
                "label": i.label,
                "discount_percentage": i.discount_percentage,
                "weight": i.weight,
                "color_hex": i.color_hex,
                "is_loss": i.is_loss,
            }
            for i in wheel_items(db)
        ],
    }


@app.post("/spin-wheel/spin")
def post_spin(req: SpinRequest, db=Depends(get_db)):
    result = spin(db, req.phone_number)
    return {
        "won_item_id": result.item_id,
        "won_label": result.label,
        "discount_code": result.discount_code,
        "discount_percentage": result.discount_percentage,
        "is_loss": result.is_loss,
    }


@app.post("/spin-wheel/validate")
def post_validate(req: ValidateRequest, db=Depends(get_db)):
    check = validate_code(db, req.code, req.phone_number)
    return {"code": check.code, "percentage": check.percentage, "owner": check.owner}


@app.get("/discount-codes")
def list_discount_codes(x_api_key: Optional[str] = Header(default=None), db=Depends(get_db)):
    _require_api_key(x_api_key)
    rows = db.query(database.CustomerLead).order_by(database.CustomerLead.id.desc()).all()
    return [
        {
            "id": r.id,
            "phone_number": r.phone_number,
            "won_prize_label": r.won_prize_label,
            "discount_code": r.discount_code,
            "discount_percentage": r.discount_percentage,
            "is_used": r.is_used,
            "created_at": r.created_at.isoformat() if r.created_at else None,
        }
        for r in rows
    ]


@app.post("/discount-codes", status_code=201)
def post_discount_code(
    req: DiscountCodeCreate,
    x_api_key: Optional[str] = Header(default=None),
    db=Depends(get_db),
):
    _require_api_key(x_api_key)
    lead = create_manual_code(
        db,
        req.discount_percentage,
        code=req.code,
        phone=req.phone_number,
        label=req.label,
    )
    return {
        "id": lead.id,
        "discount_code": lead.discount_code,
        "discount_percentage": lead.discount_percentage,
        "phone_number": lead.phone_number,
        "won_prize_label": lead.won_prize_label,
    }
