"""
Tests for the prize wheel and single-use discount codes.

Uses an in-memory SQLite store so the unique constraints behave as in
production.
"""

import random
import unittest
from types import SimpleNamespace
from unittest.mock import Mock, patch

from sqlalchemy.exc import IntegrityError

from database import CustomerLead, SpinWheelItem, get_or_create_settings
from promotions import (
    PromotionConflict,
    PromotionError,
    create_manual_code,
    draw_prize,
    normalize_phone,
    redeem_code,
    spin,
    validate_code,
    wheel_items,
)
from sqlite_memory import make_session_factory


def _slice(label, weight, is_loss=False):
    return SimpleNamespace(label=label, weight=weight, is_loss=is_loss)


def _fixed_rng(value):
    return Mock(random=Mock(return_value=value))


class TestDrawPrize(unittest.TestCase):

    def setUp(self):
        self.items = [_slice("A", 30), _slice("B", 20), _slice("C", 50)]

    def test_walks_cumulative_weights(self):
        self.assertEqual(draw_prize(self.items, _fixed_rng(0.0)).label, "A")
        self.assertEqual(draw_prize(self.items, _fixed_rng(0.29)).label, "A")
        # roll 30 lands exactly on the boundary and belongs to the next slice
        self.assertEqual(draw_prize(self.items, _fixed_rng(0.30)).label, "B")
        self.assertEqual(draw_prize(self.items, _fixed_rng(0.49)).label, "B")
        self.assertEqual(draw_prize(self.items, _fixed_rng(0.999)).label, "C")

    def test_zero_weight_slice_never_wins(self):
        items = [_slice("never", 0), _slice("always", 1)]
        for value in (0.0, 0.5, 0.99):
            self.assertEqual(draw_prize(items, _fixed_rng(value)).label, "always")

    def test_empty_wheel_rejected(self):
        with self.assertRaises(PromotionError):
            draw_prize([], random.Random(1))

    def test_zero_total_weight_rejected(self):
        with self.assertRaises(PromotionError):
            draw_prize([_slice("A", 0), _slice("B", 0)], random.Random(1))


class TestNormalizePhone(unittest.TestCase):

    def test_keeps_digits_only(self):
        self.assertEqual(normalize_phone("+90 (555) 123-45 67"), "905551234567")
        self.assertEqual(normalize_phone(None), "")
        self.assertEqual(normalize_phone("  "), "")


class PromotionStoreTestCase(unittest.TestCase):

    def setUp(self):
        self.engine, self.factory = make_session_factory()
        self.db = self.factory()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def _only_winning_slice(self, percentage=10):
        self.db.add(SpinWheelItem(label=f"{percentage}% OFF", discount_percentage=percentage, weight=1, is_loss=False))
        self.db.commit()


class TestSpin(PromotionStoreTestCase):

    def test_default_wheel_seeded_once(self):
        first = wheel_items(self.db)
        second = wheel_items(self.db)

        self.assertEqual(len(first), 6)
        self.assertEqual([i.id for i in first], [i.id for i in second])

    def test_win_mints_code(self):
        self._only_winning_slice(15)

        result = spin(self.db, "0555 111 22 33", random.Random(7))

        self.assertFalse(result.is_loss)
        self.assertTrue(result.discount_code.startswith("LUCKY"))
        self.assertEqual(result.discount_percentage, 15)
        lead = self.db.query(CustomerLead).one()
        self.assertEqual(lead.phone_number, "05551112233")
        self.assertEqual(lead.discount_code, result.discount_code)
        self.assertFalse(lead.is_used)

    def test_loss_has_no_code(self):
        self.db.add(SpinWheelItem(label="PASS", discount_percentage=0, weight=1, is_loss=True))
        self.db.commit()

        result = spin(self.db, "5550001111", random.Random(1))

        self.assertTrue(result.is_loss)
        self.assertEqual(result.discount_code, "")
        self.assertIsNone(self.db.query(CustomerLead).one().discount_code)

    def test_same_phone_cannot_spin_twice(self):
        spin(self.db, "555-000-1111", random.Random(1))

        with self.assertRaisesRegex(PromotionConflict, "already participated"):
            spin(self.db, "(555) 000 1111", random.Random(2))
        self.assertEqual(self.db.query(CustomerLead).count(), 1)

    def test_phone_required(self):
        with self.assertRaises(PromotionError):
            spin(self.db, "no digits", random.Random(1))

    def test_disabled_wheel(self):
        get_or_create_settings(self.db).is_wheel_enabled = False
        self.db.commit()

        with self.assertRaisesRegex(PromotionError, "disabled"):
            spin(self.db, "5550001111", random.Random(1))

    def test_unique_phone_enforced_by_store(self):
        self.db.add(CustomerLead(phone_number="5551234567", won_prize_label="PASS"))
        self.db.commit()
        self.db.add(CustomerLead(phone_number="5551234567", won_prize_label="PASS"))

        with self.assertRaises(IntegrityError):
            self.db.commit()
        self.db.rollback()

    def test_phone_race_lost_at_commit(self):
        self.db.add(SpinWheelItem(label="PASS", discount_percentage=0, weight=1, is_loss=True))
        self.db.commit()
        items = wheel_items(self.db)

        def spin_elsewhere(_items, _rng):
            # same phone lands from another session after the pre-check
            other = self.factory()
            try:
                other.add(CustomerLead(phone_number="5550001111", won_prize_label="PASS"))
                other.commit()
            finally:
                other.close()
            return items[0]

        with patch("promotions.draw_prize", side_effect=spin_elsewhere):
            with self.assertRaisesRegex(PromotionConflict, "already participated"):
                spin(self.db, "555 000 1111", random.Random(1))

        self.assertEqual(self.db.query(CustomerLead).count(), 1)

    def test_code_collision_lost_at_commit(self):
        self._only_winning_slice(10)
        create_manual_code(self.db, 10, code="LUCKY1234")
        rng = Mock(random=Mock(return_value=0.0), randint=Mock(return_value=1234))

        with patch("promotions._code_taken", return_value=False):
            with self.assertRaisesRegex(PromotionConflict, "Could not allocate"):
                spin(self.db, "5550001111", rng)

        self.assertIsNone(self.db.query(CustomerLead).filter_by(phone_number="5550001111").first())


class TestDiscountCodes(PromotionStoreTestCase):

    def _won_code(self, phone="5551112233"):
        self._only_winning_slice(10)
        return spin(self.db, phone, random.Random(3)).discount_code

    def test_validate_returns_percentage(self):
        code = self._won_code()

        check = validate_code(self.db, code.lower(), "+555 111 22 33")

        self.assertEqual(check.code, code)
        self.assertEqual(check.percentage, 10)
        self.assertEqual(check.owner, "5551112233")

    def test_unknown_code(self):
        with self.assertRaisesRegex(PromotionError, "Invalid"):
            validate_code(self.db, "NOPE1234", "5551112233")

    def test_code_bound_to_phone(self):
        code = self._won_code()

        with self.assertRaisesRegex(PromotionError, "another phone"):
            validate_code(self.db, code, "5559999999")

    def test_used_code_rejected_regardless_of_phone(self):
        code = self._won_code()
        redeem_code(self.db, code, "5551112233")
        self.db.commit()

        with self.assertRaisesRegex(PromotionConflict, "already been used"):
            validate_code(self.db, code, "5551112233")
        with self.assertRaisesRegex(PromotionConflict, "already been used"):
            validate_code(self.db, code, "5559999999")

    def test_redeem_only_once(self):
        code = self._won_code()

        redeem_code(self.db, code, "5551112233")
        self.db.commit()

        with self.assertRaises(PromotionConflict):
            redeem_code(self.db, code, "5551112233")
        self.assertTrue(self.db.query(CustomerLead).filter_by(discount_code=code).one().is_used)

    def test_redeem_after_stale_check_updates_nothing(self):
        code = self._won_code()
        # both checks pass before either redemption commits
        stale = validate_code(self.db, code, "5551112233")
        redeem_code(self.db, code, "5551112233")
        self.db.commit()

        with patch("promotions.validate_code", return_value=stale):
            with self.assertRaisesRegex(PromotionConflict, "already been used"):
                redeem_code(self.db, code, "5551112233")

        self.assertEqual(self.db.query(CustomerLead).filter_by(is_used=True).count(), 1)

    def test_manual_code_uppercased(self):
        lead = create_manual_code(self.db, 20, code=" summer20 ", label="Summer")

        self.assertEqual(lead.discount_code, "SUMMER20")
        self.assertEqual(lead.won_prize_label, "Summer")
        self.assertIsNone(lead.phone_number)

    def test_manual_code_generated(self):
        lead = create_manual_code(self.db, 5, rng=random.Random(9))

        self.assertTrue(lead.discount_code.startswith("MANUAL"))
        self.assertEqual(lead.won_prize_label, "MANUAL")

    def test_manual_code_duplicate(self):
        create_manual_code(self.db, 20, code="SUMMER20")

        with self.assertRaisesRegex(PromotionConflict, "already exists"):
            create_manual_code(self.db, 25, code="summer20")

    def test_manual_code_percentage_range(self):
        for bad in (0, -5, 101):
            with self.assertRaises(PromotionError):
                create_manual_code(self.db, bad, code=f"BAD{bad}")

    def test_manual_codes_without_phone_coexist(self):
        create_manual_code(self.db, 10, code="ONE")
        create_manual_code(self.db, 10, code="TWO")

        self.assertEqual(self.db.query(CustomerLead).count(), 2)

    def test_phoneless_manual_code_accepts_any_phone(self):
        create_manual_code(self.db, 10, code="WELCOME")

        check = validate_code(self.db, "WELCOME", "5550000000")

        self.assertEqual(check.percentage, 10)


if __name__ == "__main__":
    unittest.main()
