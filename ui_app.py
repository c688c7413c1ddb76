import os

import requests
import streamlit as st

API_BASE = os.environ.get("API_BASE", "http://localhost:8000").rstrip("/")


def _usd(x) -> str:
    try:
        if x is None:
            return ""
        return f"${float(x):,.2f}"
    except Exception:
        return str(x)


@st.cache_data(ttl=60)
def _load_catalog() -> dict:
    r = requests.get(f"{API_BASE}/catalog", timeout=30)
    r.raise_for_status()
    return r.json()


st.set_page_config(page_title="Lightbox Instant Quote", layout="centered")

st.markdown(
    """
    <style>
    h1 {
      font-family: Arial, sans-serif;
      font-weight: 800;
      letter-spacing: 0.2px;
      margin-bottom: 0.25rem;
    }
    </style>
    """,
    unsafe_allow_html=True
)

st.title("Lightbox Instant Quote")

try:
    catalog = _load_catalog()
except Exception as e:
    st.error(f"Could not load the price catalog: {e}")
    st.stop()

product = st.radio("Product", options=["Lightbox", "Fabric print"], horizontal=True)

width = st.number_input("Width (cm)", min_value=1.0, value=100.0, step=1.0)
height = st.number_input("Height (cm)", min_value=1.0, value=70.0, step=1.0)
double_sided = st.checkbox("Double sided", value=False)
profile = "DOUBLE" if double_sided else "SINGLE"

if product == "Lightbox":
    depths = sorted({p["depth_cm"] for p in catalog["profiles"] if p["sidedness"] == profile})
    if not depths:
        st.error("No frame profile is available for this sidedness.")
        st.stop()
    depth = st.selectbox("Frame depth (cm)", options=depths)

    backings = {b["display_name"]: b for b in catalog["backings"]}
    backing_name = st.selectbox("Backing", options=list(backings.keys()))
    backing = backings[backing_name]

    led_type = st.selectbox(
        "LED",
        options=["INNER", "OUTER"],
        format_func=lambda v: "Indoor" if v == "INNER" else "Outdoor",
    )

    payload = {
        "width": width,
        "height": height,
        "depth": depth,
        "profile": profile,
        "led_type": led_type,
        "backplate": backing["material_code"],
    }
    calc_path = "/calculate"
else:
    has_feet = st.checkbox("Add stand (feet)", value=False)
    payload = {"width": width, "height": height, "profile": profile, "has_feet": has_feet}
    calc_path = "/calculate/fabric"

st.divider()
st.subheader("Quote Summary")

r = requests.post(f"{API_BASE}{calc_path}", json=payload, timeout=30)
if r.status_code != 200:
    st.error(r.text)
    st.stop()
result = r.json()

c1, c2 = st.columns(2)
c1.metric("Price", _usd(result["final_price"]))
c2.metric("Area", f"{result['area_m2']:.2f} m²")

if product == "Lightbox":
    layout = result["selected_layout"]
    st.caption(
        f"LED layout: {layout['strip_count']} × {layout['direction'].lower()} strips, "
        f"{layout['total_led_meters']:.2f} m · adapter {result['adapter_name']}"
    )
    if result.get("adapter_undersized"):
        st.warning("This size needs more current than our largest adapter; we will contact you.")

st.divider()
st.subheader("Order")

name = st.text_input("Name")
phone = st.text_input("Phone")
email = st.text_input("Email (optional)")
discount_code = st.text_input("Discount code (optional)").strip()

if st.button("Place Order"):
    if not name.strip() or not phone.strip():
        st.error("Name and phone are required.")
        st.stop()

    order_req = {
        "customer_name": name,
        "customer_phone": phone,
        "customer_email": email or None,
        "discount_code": discount_code or None,
    }
    order_req["lightbox" if product == "Lightbox" else "fabric"] = payload

    try:
        r = requests.post(f"{API_BASE}/orders", json=order_req, timeout=30)

        if r.status_code != 201:
            st.error(f"Order failed: {r.status_code}")
            st.code(r.text)
            st.stop()

        order = r.json()
        st.success(f"Order #{order['id']} received. Total {_usd(order['price'])}")
        st.write("Keep this link to check your order status:")
        st.code(order["access_link"])

    except Exception as e:
        st.error(f"Order failed: {e}")
