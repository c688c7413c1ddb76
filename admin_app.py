# admin_app.py
import os
from datetime import datetime
from typing import Optional

import pandas as pd
import requests
import streamlit as st

st.set_page_config(page_title="Lightbox Admin", layout="wide")

st.title("Lightbox Admin Dashboard")
st.caption("Orders, status changes and pricing settings via the Lightbox Pricing API.")

# ----------------------------
# Config
# ----------------------------
API_BASE = os.environ.get("API_BASE", "http://localhost:8000").rstrip("/")
DEFAULT_LIMIT = int(os.environ.get("ADMIN_DEFAULT_LIMIT", "50"))
STATUSES = ["Pending", "Shipped", "Completed", "Cancelled"]

# ----------------------------
# Sidebar
# ----------------------------
with st.sidebar:
    st.subheader("Connection")
    st.write("API Base:")
    st.code(API_BASE)

    admin_key = st.text_input(
        "Admin API Key",
        type="password",
        value=os.environ.get("ADMIN_API_KEY", ""),
        help="This is the same value as API_KEY on the API service.",
    ).strip()

    st.divider()
    st.subheader("Filters")
    limit = st.number_input("Max rows", min_value=1, max_value=500, value=DEFAULT_LIMIT, step=10)

    if st.button("🩺 Ping API"):
        try:
            r = requests.get(f"{API_BASE}/health", timeout=10)
            st.success(f"API /health: {r.status_code} {r.text}")
        except Exception as e:
            st.error(f"API ping failed: {e}")


# ----------------------------
# Helpers
# ----------------------------
def _usd(x) -> str:
    if x is None:
        return ""
    return f"${float(x):,.2f}"


def _fmt_dt(x) -> str:
    if not x:
        return ""
    try:
        return datetime.fromisoformat(str(x).replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except Exception:
        return str(x)


def _headers() -> dict:
    return {"x-api-key": admin_key} if admin_key else {}


def api_get(path: str, *, params: Optional[dict] = None) -> requests.Response:
    return requests.get(f"{API_BASE}{path}", headers=_headers(), params=params, timeout=30)


def api_send(method: str, path: str, payload: dict) -> requests.Response:
    return requests.request(method, f"{API_BASE}{path}", headers=_headers(), json=payload, timeout=30)


if not admin_key:
    st.info("Enter your **Admin API Key** in the sidebar to load orders.")
    st.stop()

tab_orders, tab_settings = st.tabs(["Orders", "Settings"])

# ----------------------------
# Orders
# ----------------------------
with tab_orders:
    r = api_get("/orders", params={"limit": int(limit)})
    if r.status_code == 401:
        st.error("Unauthorized (401). Your Admin API Key is wrong or not being sent.")
        st.stop()
    if r.status_code != 200:
        st.error(f"API error: {r.status_code}")
        st.code(r.text)
        st.stop()

    orders = r.json().get("orders", [])
    if not orders:
        st.warning("No orders yet.")
    else:
        rows = [
            {
                "Order ID": o["id"],
                "Created": _fmt_dt(o.get("created_at")),
                "Customer": o.get("customer_name") or "",
                "Phone": o.get("customer_phone") or "",
                "Size (cm)": o.get("dimensions") or "",
                "Type": (o.get("configuration") or {}).get("type", ""),
                "Price": _usd(o.get("price")),
                "Discount": f"{o['discount_percentage']}%" if o.get("discount_percentage") else "",
                "Status": o.get("status"),
            }
            for o in orders
        ]
        st.subheader(f"Orders ({len(rows)})")
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

        st.divider()
        by_id = {o["id"]: o for o in orders}
        picked = st.selectbox("Order", options=list(by_id.keys()))
        o = by_id[picked]

        c1, c2 = st.columns(2)
        with c1:
            st.caption("Cost breakdown (frozen at order time)")
            st.json(o.get("cost_details") or {})
        with c2:
            st.caption("Configuration")
            st.json(o.get("configuration") or {})

            new_status = st.selectbox("Status", options=STATUSES, index=STATUSES.index(o["status"]))
            if st.button("Update status"):
                r = api_send("PUT", f"/orders/{picked}/status", {"status": new_status})
                if r.status_code == 200:
                    st.success(f"Order {picked} is now {new_status}.")
                    st.rerun()
                else:
                    st.error(r.text)

# ----------------------------
# Settings
# ----------------------------
with tab_settings:
    r = api_get("/settings")
    if r.status_code != 200:
        st.error(f"API error: {r.status_code}")
        st.code(r.text)
        st.stop()
    current = r.json()

    with st.form("settings_form"):
        edited = {}
        for key, value in current.items():
            if key == "id":
                continue
            label = key.replace("_", " ").capitalize()
            if isinstance(value, bool):
                edited[key] = st.checkbox(label, value=value)
            else:
                edited[key] = st.number_input(label, min_value=0.0, value=float(value), step=0.1)
        if st.form_submit_button("Save settings"):
            r = api_send("POST", "/settings", edited)
            if r.status_code == 200:
                st.success("Settings saved.")
            else:
                st.error(r.text)
