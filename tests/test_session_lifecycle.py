import unittest
from datetime import timedelta

from app.application.use_cases import end_session, start_session
from app.application.use_cases.end_session import EndSessionInput
from app.application.use_cases.start_session import StartSessionInput
from app.domain.errors import (
    AlreadyClosedError,
    ConflictError,
    InconsistentStateError,
    NotFoundError,
    ValidationError,
)
from app.domain.models import CustomFunding, PlanFunding, SubscriptionFunding
from app.infrastructure.lounge_repository import LoungeRepository
from tests.fakes import NOW, InMemoryStore, RecordingAudit, seed_lounge


class _LifecycleCase(unittest.TestCase):
    def setUp(self):
        self.store = seed_lounge(InMemoryStore())
        self.repo = LoungeRepository(self.store)
        self.audit = RecordingAudit()

    def start(self, funding, customer_id=1, branch="obrero", now=NOW):
        return start_session.execute(self.repo, self.audit,
                                     StartSessionInput(customer_id, funding, branch, actor="staff-1"), now)

    def end(self, session_id, now):
        return end_session.execute(self.repo, self.audit, EndSessionInput(session_id, actor="staff-1"), now)

    def add_subscription(self, **kw):
        row = {"customer_id": 1, "plan_id": 12, "created_at": (NOW - timedelta(days=1)).isoformat(),
               "expiry_date": (NOW + timedelta(days=29)).isoformat(), "time_left": None, "days_left": None}
        row.update(kw)
        return self.store.insert("subscription_active", row)["id"]

    def session_count(self):
        return len(self.store.tables.get("sessions", []))


class StartSessionTests(_LifecycleCase):
    def test_starts_open_session_with_plan_reference(self):
        s = self.start(PlanFunding(plan_id=10))
        self.assertTrue(s.is_open)
        self.assertEqual((s.plan_id, s.subscription_id, s.start_time), (10, None, NOW))
        self.assertEqual(self.audit.actions(), ["session_start"])
        self.assertEqual(self.audit.events[0]["actor"], "staff-1")

    def test_one_open_session_per_customer(self):
        self.start(PlanFunding(plan_id=10))
        with self.assertRaises(ConflictError):
            self.start(PlanFunding(plan_id=11))
        self.assertEqual(self.session_count(), 1)

    def test_customer_can_start_again_after_logout(self):
        s = self.start(PlanFunding(plan_id=10))
        self.end(s.id, NOW + timedelta(minutes=5))
        self.assertTrue(self.start(PlanFunding(plan_id=10), now=NOW + timedelta(minutes=6)).is_open)

    def test_unknown_customer_and_plan(self):
        with self.assertRaises(NotFoundError):
            self.start(PlanFunding(plan_id=10), customer_id=99)
        with self.assertRaises(NotFoundError):
            self.start(PlanFunding(plan_id=99))
        self.assertEqual(self.session_count(), 0)

    def test_bundle_plan_requires_subscription(self):
        with self.assertRaises(ValidationError) as ctx:
            self.start(PlanFunding(plan_id=12))
        self.assertEqual(ctx.exception.code, "plan_requires_subscription")

    def test_inactive_plan_rejected(self):
        self.store.update("subscription_plans", {"id": "eq.10"}, {"is_active": False})
        with self.assertRaises(ValidationError):
            self.start(PlanFunding(plan_id=10))

    def test_timed_plan_outside_window(self):
        with self.assertRaises(ValidationError) as ctx:
            self.start(PlanFunding(plan_id=14), now=NOW.replace(hour=20))
        self.assertEqual(ctx.exception.code, "outside_valid_hours")
        self.assertEqual(self.session_count(), 0)

    def test_timed_plan_with_malformed_window(self):
        self.store.update("subscription_plans", {"id": "eq.14"}, {"time_valid_end": "10:00"})
        with self.assertRaises(ValidationError) as ctx:
            self.start(PlanFunding(plan_id=14))
        self.assertEqual(ctx.exception.code, "invalid_time_window")

    def test_expired_subscription_cannot_fund(self):
        sub_id = self.add_subscription(time_left=500, expiry_date=(NOW - timedelta(days=1)).isoformat())
        with self.assertRaises(ConflictError) as ctx:
            self.start(SubscriptionFunding(subscription_id=sub_id))
        self.assertEqual(ctx.exception.code, "subscription_expired")

    def test_subscription_of_another_customer(self):
        sub_id = self.add_subscription(customer_id=2, time_left=100)
        with self.assertRaises(ValidationError):
            self.start(SubscriptionFunding(subscription_id=sub_id))

    def test_unknown_branch(self):
        with self.assertRaises(ValidationError):
            self.start(PlanFunding(plan_id=10), branch="cebu")

    def test_custom_session(self):
        s = self.start(CustomFunding(price=150, minutes=90))
        self.assertEqual((s.plan_id, s.price, s.custom_minutes), (None, 150, 90))


class EndSessionTests(_LifecycleCase):
    def test_hourly_logout_bills_and_updates_totals(self):
        s = self.start(PlanFunding(plan_id=10))
        out = self.end(s.id, NOW + timedelta(minutes=61))
        self.assertEqual(out.snapshot.amount_due, 90)
        self.assertEqual(out.session.end_time, NOW + timedelta(minutes=61))
        customer = self.store.one("customers", 1)
        self.assertEqual(customer["total_spent"], 90)
        self.assertAlmostEqual(customer["total_hours"], 61 / 60, places=3)
        self.assertIsNotNone(self.store.one("sessions", s.id)["end_time"])
        self.assertEqual(self.audit.actions(), ["session_start", "session_end"])

    def test_straight_logout_leaves_totals(self):
        s = self.start(PlanFunding(plan_id=11))
        out = self.end(s.id, NOW + timedelta(minutes=119))
        self.assertEqual(out.snapshot.remaining.minutes, 1)
        self.assertEqual(self.store.one("customers", 1)["total_spent"], 0)

    def test_time_bundle_floor_decrement(self):
        sub_id = self.add_subscription(time_left=100)
        s = self.start(SubscriptionFunding(subscription_id=sub_id))
        self.assertEqual(s.subscription_id, sub_id)
        out = self.end(s.id, NOW + timedelta(minutes=30, seconds=50))
        self.assertEqual(out.subscription.time_left, 70)
        self.assertEqual(self.store.one("subscription_active", sub_id)["time_left"], 70)

    def test_time_bundle_never_goes_negative(self):
        sub_id = self.add_subscription(time_left=100)
        s = self.start(SubscriptionFunding(subscription_id=sub_id))
        self.end(s.id, NOW + timedelta(minutes=150))
        self.assertEqual(self.store.one("subscription_active", sub_id)["time_left"], 0)

    def test_last_day_pass_then_subscription_is_spent(self):
        sub_id = self.add_subscription(plan_id=13, days_left=1)
        s = self.start(SubscriptionFunding(subscription_id=sub_id))
        self.end(s.id, NOW + timedelta(hours=5))
        self.assertEqual(self.store.one("subscription_active", sub_id)["days_left"], 0)
        with self.assertRaises(ConflictError):
            self.start(SubscriptionFunding(subscription_id=sub_id), now=NOW + timedelta(hours=6))

    def test_second_logout_does_not_double_decrement(self):
        sub_id = self.add_subscription(time_left=100)
        s = self.start(SubscriptionFunding(subscription_id=sub_id))
        self.end(s.id, NOW + timedelta(minutes=30))
        with self.assertRaises(AlreadyClosedError):
            self.end(s.id, NOW + timedelta(minutes=45))
        self.assertEqual(self.store.one("subscription_active", sub_id)["time_left"], 70)

    def test_failed_balance_write_is_reported_not_rolled_back(self):
        sub_id = self.add_subscription(time_left=100)
        s = self.start(SubscriptionFunding(subscription_id=sub_id))
        self.store.fail_on.add(("update", "subscription_active"))
        with self.assertRaises(InconsistentStateError) as ctx:
            self.end(s.id, NOW + timedelta(minutes=30))
        self.assertEqual(ctx.exception.details["session_id"], s.id)
        self.assertIsNotNone(self.store.one("sessions", s.id)["end_time"])
        self.assertEqual(self.store.one("subscription_active", sub_id)["time_left"], 100)

    def test_custom_session_price_counts_as_spent(self):
        s = self.start(CustomFunding(price=150))
        out = self.end(s.id, NOW + timedelta(minutes=40))
        self.assertEqual(out.snapshot.funding, "custom")
        self.assertEqual(self.store.one("customers", 1)["total_spent"], 150)

    def test_session_without_start_time_is_rejected(self):
        row = self.store.insert("sessions", {"customer_id": 1, "plan_id": 10, "branch": "obrero",
                                             "start_time": None, "end_time": None})
        with self.assertRaises(ValidationError) as ctx:
            self.end(row["id"], NOW)
        self.assertEqual(ctx.exception.code, "session_not_started")
        self.assertEqual(self.audit.actions(), [])

    def test_unknown_session(self):
        with self.assertRaises(NotFoundError):
            self.end(404, NOW)


if __name__ == "__main__":
    unittest.main()
