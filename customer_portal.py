# customer_portal.py
import os
from datetime import datetime
from typing import Any, Dict, Optional

import pandas as pd
import requests
import streamlit as st


# ----------------------------
# Page setup
# ----------------------------
st.set_page_config(page_title="Lightbox Order Status", layout="centered")
st.title("Your Lightbox Order")

API_BASE = os.environ.get("API_BASE", "http://localhost:8000").rstrip("/")

CONFIG_LABELS = {
    "type": "Product",
    "width": "Width (cm)",
    "height": "Height (cm)",
    "depth": "Depth (cm)",
    "profile": "Sides",
    "ledType": "LED",
    "backplate": "Backing",
    "hasFeet": "Stand",
}


def _usd(x) -> str:
    try:
        if x is None:
            return ""
        return f"${float(x):,.2f}"
    except Exception:
        return str(x)


def _dt(x: str) -> str:
    try:
        if not x:
            return ""
        return datetime.fromisoformat(x.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except Exception:
        return str(x)


def _query_param(name: str) -> Optional[str]:
    v = st.query_params.get(name)
    if isinstance(v, list):
        v = v[0] if v else None
    return v


def _kv_table(d: Dict[str, Any]) -> pd.DataFrame:
    rows = [(CONFIG_LABELS[k], d[k]) for k in CONFIG_LABELS if k in d]
    return pd.DataFrame(rows, columns=["Field", "Value"])


order_id = st.text_input("Order number", value=_query_param("order_id") or "").strip()
code = st.text_input("Access code", value=_query_param("code") or "", type="password").strip()

if not order_id or not code:
    st.info("Open the link from your order confirmation, or enter the order number and access code.")
    st.stop()

if not order_id.isdigit():
    st.error("The order number must be numeric.")
    st.stop()

try:
    r = requests.get(f"{API_BASE}/orders/{order_id}", params={"code": code}, timeout=30)
except Exception as e:
    st.error(f"Could not reach the order service: {e}")
    st.stop()

if r.status_code == 404:
    st.error("No order matches this number and access code.")
    st.stop()
if r.status_code != 200:
    st.error(f"API error: {r.status_code}")
    st.code(r.text)
    st.stop()

order = r.json()

c1, c2, c3 = st.columns(3)
c1.metric("Status", order["status"])
c2.metric("Total", _usd(order["price"]))
c3.metric("Size (cm)", order["dimensions"])
st.caption(f"Placed {_dt(order.get('created_at'))}")

st.subheader("Configuration")
st.dataframe(_kv_table(order.get("configuration") or {}), use_container_width=True, hide_index=True)
