import logging
import unittest
from unittest.mock import Mock, patch

from app.core.settings import Settings
from app.domain.errors import NotFoundError, StorageError
from app.infrastructure.audit_log import SupabaseAuditLog
from app.infrastructure.lounge_repository import LoungeRepository
from app.infrastructure.record_store import SupabaseRecordStore
from app.infrastructure.reference_cache import ReferenceCache
from app.shared.setup_logger import TraceIdFilter, resolve_level
from app.shared.trace import set_trace_id
from tests.fakes import InMemoryStore, seed_lounge


def _settings() -> Settings:
    return Settings(
        base_dir="/tmp",
        supabase_url="https://example.supabase.co",
        supabase_service_role="service-role",
        request_timeout=5,
        lounge_timezone="Asia/Manila",
        default_branch="obrero",
        reference_cache_ttl=30,
        cors_origins=["*"],
        app_host="127.0.0.1",
        app_port=5001,
        app_debug=False,
    )


def _response(status: int, payload=None, text: str = ""):
    r = Mock()
    r.ok = 200 <= status < 300
    r.status_code = status
    r.json.return_value = payload
    r.text = text
    return r


class SupabaseRecordStoreTests(unittest.TestCase):
    @patch("app.infrastructure.supabase_rest.requests.get")
    def test_select_builds_postgrest_query(self, get):
        get.return_value = _response(200, [{"id": 1}])
        rows = SupabaseRecordStore(_settings()).select("sessions", {"end_time": "is.null"},
                                                        order="start_time.desc", limit=5)
        self.assertEqual(rows, [{"id": 1}])
        url = get.call_args.args[0]
        params = get.call_args.kwargs["params"]
        self.assertEqual(url, "https://example.supabase.co/rest/v1/sessions")
        self.assertEqual(params, {"select": "*", "end_time": "is.null", "order": "start_time.desc", "limit": "5"})
        self.assertEqual(get.call_args.kwargs["headers"]["apikey"], "service-role")

    @patch("app.infrastructure.supabase_rest.requests.post")
    def test_insert_drops_empty_id_and_returns_representation(self, post):
        post.return_value = _response(201, [{"id": 8, "first_name": "Ana"}])
        row = SupabaseRecordStore(_settings()).insert("customers", {"id": None, "first_name": "Ana"})
        self.assertEqual(row["id"], 8)
        self.assertEqual(post.call_args.kwargs["json"], [{"first_name": "Ana"}])
        self.assertEqual(post.call_args.kwargs["headers"]["Prefer"], "return=representation")

    @patch("app.infrastructure.supabase_rest.requests.patch")
    def test_rls_failure_becomes_storage_error(self, patch_req):
        patch_req.return_value = _response(403, text="new row violates row-level security policy")
        with self.assertRaises(StorageError) as ctx:
            SupabaseRecordStore(_settings()).update("customers", {"id": "eq.1"}, {"total_spent": 1})
        self.assertEqual(ctx.exception.code, "supabase_update_403")
        self.assertIn("RLS", ctx.exception.message)


class RepositoryTests(unittest.TestCase):
    def test_missing_record_is_not_found(self):
        with self.assertRaises(NotFoundError) as ctx:
            LoungeRepository(InMemoryStore()).get_session(3)
        self.assertEqual(ctx.exception.code, "session_not_found")

    def test_active_plans_filter(self):
        store = seed_lounge(InMemoryStore())
        store.update("subscription_plans", {"id": "eq.10"}, {"is_active": False})
        ids = [p.id for p in LoungeRepository(store).list_plans(active_only=True)]
        self.assertEqual(ids, [11, 12, 13, 14])


class AuditLogTests(unittest.TestCase):
    def test_writes_action_log_row(self):
        store = InMemoryStore()
        SupabaseAuditLog(store).record("session_start", "Started", {"session_id": 1}, actor="staff-1")
        row = store.tables["action_logs"][0]
        self.assertEqual((row["user_id"], row["action_type"], row["metadata"]), ("staff-1", "session_start",
                                                                                 {"session_id": 1}))

    def test_write_failure_is_swallowed(self):
        store = InMemoryStore()
        store.fail_on.add(("insert", "action_logs"))
        SupabaseAuditLog(store).record("session_end", "Ended")
        self.assertNotIn("action_logs", store.tables)


class ReferenceCacheTests(unittest.TestCase):
    def test_reads_through_and_refreshes_after_ttl(self):
        store = seed_lounge(InMemoryStore())
        clock = Mock(return_value=100.0)
        cache = ReferenceCache(LoungeRepository(store), ttl_seconds=30, clock=clock)

        self.assertEqual(len(cache.customers()), 2)
        store.insert("customers", {"first_name": "Carla", "last_name": "Santos"})
        self.assertEqual(len(cache.customers()), 2)

        clock.return_value = 131.0
        self.assertEqual(len(cache.customers()), 3)

    def test_invalidate(self):
        store = seed_lounge(InMemoryStore())
        cache = ReferenceCache(LoungeRepository(store), clock=Mock(return_value=0.0))
        cache.plans()
        store.insert("subscription_plans", {"name": "New", "plan_type": "hourly", "price": 1})
        cache.invalidate("plans")
        self.assertEqual(len(cache.plans()), 6)



class LoggingSetupTests(unittest.TestCase):
    @patch.dict("os.environ", {"LOG_LEVEL": "warning", "APP_DEBUG": "true"})
    def test_explicit_level_wins_over_debug_flag(self):
        self.assertEqual(resolve_level(), logging.WARNING)

    @patch.dict("os.environ", {"LOG_LEVEL": "loud", "APP_DEBUG": "true"})
    def test_unknown_level_falls_back_to_debug_flag(self):
        self.assertEqual(resolve_level(), logging.DEBUG)

    def test_records_carry_trace_id(self):
        record = logging.LogRecord("sparkhub", logging.INFO, __file__, 1, "hi", None, None)
        set_trace_id("req-7")
        TraceIdFilter().filter(record)
        self.assertEqual(record.trace_id, "req-7")

if __name__ == "__main__":
    unittest.main()
