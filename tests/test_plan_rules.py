import unittest

from app.application.services.plan_rules import parse_funding_choice, parse_plan
from app.domain.errors import ValidationError
from app.domain.models import CustomFunding, PlanFunding, SubscriptionFunding


def _payload(**kw):
    base = {"name": "Night Owl", "price": 150, "available_at": ["obrero"]}
    base.update(kw)
    return base


class PlanValidationTests(unittest.TestCase):
    def assertRejected(self, payload, code):
        with self.assertRaises(ValidationError) as ctx:
            parse_plan(payload)
        self.assertEqual(ctx.exception.code, code)

    def test_time_bundle_ok(self):
        plan = parse_plan(_payload(plan_type="bundle", time_included=600, expiry_duration=30))
        self.assertEqual((plan.time_included, plan.days_included, plan.expiry_duration), (600, None, 30))

    def test_bundle_needs_exactly_one_allotment(self):
        self.assertRejected(_payload(plan_type="bundle", expiry_duration=30), "invalid_bundle_allotment")
        self.assertRejected(_payload(plan_type="bundle", time_included=60, days_included=3, expiry_duration=30),
                            "invalid_bundle_allotment")

    def test_bundle_needs_expiry_duration(self):
        self.assertRejected(_payload(plan_type="bundle", days_included=3), "missing_expiry_duration")

    def test_bundle_expiry_must_be_at_least_a_day(self):
        self.assertRejected(_payload(plan_type="bundle", time_included=60, expiry_duration=0),
                            "invalid_expiry_duration")

    def test_active_flag_accepts_bool_or_text(self):
        self.assertFalse(parse_plan(_payload(plan_type="hourly", is_active="false")).is_active)
        self.assertTrue(parse_plan(_payload(plan_type="hourly", is_active="TRUE")).is_active)
        self.assertFalse(parse_plan(_payload(plan_type="hourly", is_active=False)).is_active)
        self.assertRejected(_payload(plan_type="hourly", is_active="no"), "invalid_is_active")
        self.assertRejected(_payload(plan_type="hourly", is_active=0), "invalid_is_active")

    def test_straight_needs_time_included(self):
        self.assertRejected(_payload(plan_type="straight"), "missing_time_included")

    def test_timed_window_must_be_ordered(self):
        self.assertRejected(_payload(plan_type="timed", time_valid_start="18:00", time_valid_end="06:00"),
                            "invalid_time_window")
        self.assertRejected(_payload(plan_type="timed", time_valid_start="18:00"), "missing_time_window")
        self.assertRejected(_payload(plan_type="timed", time_valid_start="7pm", time_valid_end="23:00"),
                            "invalid_time_valid_start")

    def test_timed_window_normalized(self):
        plan = parse_plan(_payload(plan_type="timed", time_valid_start="06:00:00", time_valid_end="12:30"))
        self.assertEqual((plan.time_valid_start, plan.time_valid_end), ("06:00", "12:30"))

    def test_hourly_needs_only_price(self):
        self.assertEqual(parse_plan(_payload(plan_type="hourly")).price, 150.0)

    def test_negative_price_and_unknown_branch(self):
        self.assertRejected(_payload(plan_type="hourly", price=-1), "invalid_price")
        self.assertRejected(_payload(plan_type="hourly", available_at=["cebu"]), "invalid_available_at")
        self.assertRejected(_payload(plan_type="monthly"), "invalid_plan_type")


class FundingChoiceTests(unittest.TestCase):
    def test_variants(self):
        self.assertEqual(parse_funding_choice({"kind": "plan", "plan_id": "3"}), PlanFunding(plan_id=3))
        self.assertEqual(parse_funding_choice({"kind": "subscription", "subscription_id": 9}),
                         SubscriptionFunding(subscription_id=9))
        self.assertEqual(parse_funding_choice({"kind": "custom", "price": 120, "minutes": 90}),
                         CustomFunding(price=120.0, minutes=90))

    def test_missing_reference(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_funding_choice({"kind": "plan"})
        self.assertEqual(ctx.exception.code, "invalid_funding")

    def test_unknown_kind(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_funding_choice({"kind": "voucher"})
        self.assertEqual(ctx.exception.code, "invalid_funding_kind")


if __name__ == "__main__":
    unittest.main()
