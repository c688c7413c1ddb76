"""
HTTP tests for the pricing API against an in-memory store.
"""

import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

import api_app
from sqlite_memory import make_session_factory

ADMIN_KEY = "test-admin-key"

LIGHTBOX = {
    "width": 100,
    "height": 70,
    "depth": 8,
    "profile": "SINGLE",
    "led_type": "INNER",
    "backplate": "MDF_3MM",
}


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.engine, factory = make_session_factory()

        def _get_db():
            db = factory()
            try:
                yield db
            finally:
                db.close()

        api_app.app.dependency_overrides[api_app.get_db] = _get_db
        key_patch = patch.object(api_app, "API_KEY", ADMIN_KEY)
        key_patch.start()
        self.addCleanup(key_patch.stop)
        self.client = TestClient(api_app.app)

    def tearDown(self):
        api_app.app.dependency_overrides.clear()
        self.engine.dispose()

    def admin(self):
        return {"x-api-key": ADMIN_KEY}

    def place_order(self, **extra):
        body = {"customer_name": "Ada Example", "customer_phone": "5551112233", "lightbox": LIGHTBOX}
        body.update(extra)
        r = self.client.post("/orders", json=body)
        self.assertEqual(r.status_code, 201, r.text)
        return r.json()


class TestCalculate(ApiTestCase):

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"ok": True})

    def test_breakdown(self):
        r = self.client.post("/calculate", json=LIGHTBOX)

        self.assertEqual(r.status_code, 200, r.text)
        data = r.json()
        self.assertEqual(data["final_price"], 98.56)
        self.assertEqual(data["raw_material_total"], 58.32)
        self.assertEqual(data["adapter_name"], "10A Adapter")
        self.assertEqual(data["selected_layout"]["direction"], "Vertical")
        self.assertEqual(data["alternative_layout"]["direction"], "Horizontal")

    def test_double_sided_square(self):
        r = self.client.post("/calculate", json={**LIGHTBOX, "width": 100, "height": 100, "profile": "DOUBLE"})

        layout = r.json()["selected_layout"]
        self.assertEqual(layout["strip_count"], 14)
        self.assertEqual(layout["total_led_meters"], 13.72)

    def test_zero_width_is_rejected_as_text(self):
        r = self.client.post("/calculate", json={**LIGHTBOX, "width": 0})

        self.assertEqual(r.status_code, 400)
        self.assertIn("width must be > 0", r.text)

    def test_unknown_backplate(self):
        r = self.client.post("/calculate", json={**LIGHTBOX, "backplate": "GLASS"})

        self.assertEqual(r.status_code, 400)
        self.assertIn("GLASS", r.text)

    def test_unknown_led_type_fails_schema(self):
        r = self.client.post("/calculate", json={**LIGHTBOX, "led_type": "NEON"})

        self.assertEqual(r.status_code, 422)

    def test_fabric(self):
        r = self.client.post("/calculate/fabric", json={"width": 100, "height": 100, "has_feet": True})

        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()["final_price"], 63.0)

    def test_catalog(self):
        data = self.client.get("/catalog").json()

        self.assertEqual(len(data["profiles"]), 7)
        self.assertEqual(data["backings"][0]["material_code"], "MDF_3MM")
        amps = [a["amperage"] for a in data["adapters"]]
        self.assertEqual(amps, sorted(amps))
        self.assertEqual(data["settings"]["default_led_spacing_cm"], 15.0)


class TestSettings(ApiTestCase):

    def test_defaults_created_lazily(self):
        data = self.client.get("/settings").json()

        self.assertEqual(data["id"], 1)
        self.assertEqual(data["labor_rate_percentage"], 30.0)
        self.assertTrue(data["is_wheel_enabled"])

    def test_update_requires_key(self):
        r = self.client.post("/settings", json={"labor_rate_percentage": 40})

        self.assertEqual(r.status_code, 401)

    def test_update_changes_next_calculation(self):
        r = self.client.post("/settings", json={"labor_rate_percentage": 0, "profit_margin_percentage": 0}, headers=self.admin())
        self.assertEqual(r.status_code, 200, r.text)

        data = self.client.post("/calculate", json=LIGHTBOX).json()

        self.assertEqual(data["final_price"], data["raw_material_total"])

    def test_negative_rejected(self):
        r = self.client.post("/settings", json={"stand_price": -1}, headers=self.admin())

        self.assertEqual(r.status_code, 400)

    def test_zero_spacing_rejected(self):
        r = self.client.post("/settings", json={"default_led_spacing_cm": 0}, headers=self.admin())

        self.assertEqual(r.status_code, 400)


class TestOrders(ApiTestCase):

    @patch("api_app._send_email")
    def test_create_sends_link(self, send_email):
        order = self.place_order(customer_email="ada@example.com")

        self.assertEqual(order["price"], 98.56)
        self.assertEqual(order["status"], "Pending")
        self.assertEqual(len(order["access_code"]), 22)
        self.assertIn(order["access_code"], order["access_link"])
        send_email.assert_called_once()
        self.assertEqual(send_email.call_args.kwargs["to_email"], "ada@example.com")

    @patch("api_app.SendGridAPIClient")
    def test_email_failure_still_returns_order(self, client_cls):
        client_cls.return_value.send.side_effect = RuntimeError("smtp down")
        self.client.post("/discount-codes", json={"discount_percentage": 10, "code": "TEN"}, headers=self.admin())

        with patch.object(api_app, "SENDGRID_API_KEY", "sg-key"), patch.object(api_app, "logger") as logger:
            order = self.place_order(customer_email="ada@example.com", discount_code="TEN")

        client_cls.return_value.send.assert_called_once()
        logger.exception.assert_called_once()
        r = self.client.get(f"/orders/{order['id']}", params={"code": order["access_code"]})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["discount_code"], "TEN")

    def test_profile_id_for_other_frame_rejected(self):
        lightbox = {**LIGHTBOX, "depth": 12, "profile": "DOUBLE", "profile_id": 1}

        r = self.client.post("/orders", json={"customer_name": "A", "customer_phone": "1", "lightbox": lightbox})

        self.assertEqual(r.status_code, 400)
        self.assertIn("profile id=1", r.text)
        self.assertEqual(len(self.client.get("/orders", headers=self.admin()).json()["orders"]), 0)

    def test_client_price_is_ignored(self):
        order = self.place_order(notes={"price": 1})

        self.assertEqual(order["price"], 98.56)

    def test_missing_name(self):
        r = self.client.post("/orders", json={"customer_name": "", "customer_phone": "1", "lightbox": LIGHTBOX})

        self.assertEqual(r.status_code, 400)

    def test_customer_lookup_with_code(self):
        order = self.place_order()

        r = self.client.get(f"/orders/{order['id']}", params={"code": order["access_code"]})

        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()["price"], 98.56)
        self.assertNotIn("cost_details", r.json())

    def test_customer_lookup_wrong_code(self):
        order = self.place_order()

        r = self.client.get(f"/orders/{order['id']}", params={"code": order["access_code"][:-1]})
        self.assertEqual(r.status_code, 404)

        r = self.client.get(f"/orders/{order['id']}")
        self.assertEqual(r.status_code, 404)

    def test_admin_lookup_sees_costs(self):
        order = self.place_order()

        r = self.client.get(f"/orders/{order['id']}", headers=self.admin())

        self.assertIn("cost_details", r.json())

    def test_list_requires_key(self):
        self.place_order()

        self.assertEqual(self.client.get("/orders").status_code, 401)
        r = self.client.get("/orders", headers=self.admin())
        self.assertEqual(len(r.json()["orders"]), 1)

    def test_status_transitions(self):
        order = self.place_order()
        path = f"/orders/{order['id']}/status"

        r = self.client.put(path, json={"status": "Shipped"}, headers=self.admin())
        self.assertEqual(r.json()["status"], "Shipped")

        r = self.client.put(path, json={"status": "Pending"}, headers=self.admin())
        self.assertEqual(r.status_code, 400)

        r = self.client.put(path, json={"status": "Lost"}, headers=self.admin())
        self.assertEqual(r.status_code, 422)

    def test_status_unknown_order(self):
        r = self.client.put("/orders/999/status", json={"status": "Shipped"}, headers=self.admin())

        self.assertEqual(r.status_code, 404)


class TestPromotions(ApiTestCase):

    def test_wheel_config(self):
        data = self.client.get("/spin-wheel/config").json()

        self.assertTrue(data["is_enabled"])
        self.assertEqual(len(data["items"]), 6)

    def test_second_spin_conflicts(self):
        r = self.client.post("/spin-wheel/spin", json={"phone_number": "555 000 11 22"})
        self.assertEqual(r.status_code, 200, r.text)

        r = self.client.post("/spin-wheel/spin", json={"phone_number": "5550001122"})
        self.assertEqual(r.status_code, 409)

    def test_manual_code_redeemed_by_order(self):
        r = self.client.post("/discount-codes", json={"discount_percentage": 50, "code": "half"}, headers=self.admin())
        self.assertEqual(r.status_code, 201, r.text)
        self.assertEqual(r.json()["discount_code"], "HALF")

        r = self.client.post("/spin-wheel/validate", json={"code": "HALF", "phone_number": "5551112233"})
        self.assertEqual(r.json()["percentage"], 50)

        order = self.place_order(discount_code="HALF")
        self.assertEqual(order["discount_percentage"], 50)
        self.assertEqual(order["price"], 49.28)

        r = self.client.post("/spin-wheel/validate", json={"code": "HALF", "phone_number": "5551112233"})
        self.assertEqual(r.status_code, 409)
        self.assertIn("already been used", r.text)

    def test_duplicate_manual_code(self):
        self.client.post("/discount-codes", json={"discount_percentage": 10, "code": "X1"}, headers=self.admin())

        r = self.client.post("/discount-codes", json={"discount_percentage": 10, "code": "X1"}, headers=self.admin())

        self.assertEqual(r.status_code, 409)

    def test_codes_listing_requires_key(self):
        self.assertEqual(self.client.get("/discount-codes").status_code, 401)
        self.assertEqual(self.client.get("/discount-codes", headers=self.admin()).status_code, 200)


if __name__ == "__main__":
    unittest.main()
