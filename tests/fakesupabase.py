# tests/fakesupabase.py
import copy
import itertools
import uuid
from datetime import datetime, timedelta, timezone


class FakeResult:
    def __init__(self, data, count=None):
        self.data = data
        self.count = len(data) if count is None else count


class FakeSupabaseError(Exception):
    pass


_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeQuery:
    """Chainable query over one in-memory table; ``execute()`` is awaitable."""

    def __init__(self, db, name):
        self._db = db
        self._name = name
        self._filters = []
        self._action = "select"
        self._payload = None
        self._order = None
        self._limit = None

    # --- builders --------------------------------------------------------

    def select(self, *args, **kwargs):
        self._action = "select"
        return self

    def insert(self, payload):
        self._action = "insert"
        self._payload = payload
        return self

    def update(self, values):
        self._action = "update"
        self._payload = values
        return self

    def eq(self, field, value):
        self._filters.append(lambda r: r.get(field) == value)
        return self

    def neq(self, field, value):
        self._filters.append(lambda r: r.get(field) != value)
        return self

    def in_(self, field, values):
        values_list = list(values or [])
        self._filters.append(lambda r: r.get(field) in values_list)
        return self

    def order(self, field, desc=False):
        self._order = (field, desc)
        return self

    def limit(self, n):
        self._limit = n
        return self

    # --- execution -------------------------------------------------------

    def _matches(self):
        return [row for row in self._db.tables.setdefault(self._name, []) if all(f(row) for f in self._filters)]

    async def execute(self):
        self._db.calls.append((self._name, self._action))
        if (self._name, self._action) in self._db.fail_on:
            raise FakeSupabaseError(f"{self._name}.{self._action} unavailable")

        if self._action == "insert":
            rows = self._payload if isinstance(self._payload, list) else [self._payload]
            stored = [self._db.store(self._name, row) for row in rows]
            return FakeResult(copy.deepcopy(stored))

        if self._action == "update":
            matched = self._matches()
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return FakeResult(copy.deepcopy(matched))

        rows = self._matches()
        count = len(rows)
        if self._order:
            field, desc = self._order
            rows = sorted(rows, key=lambda r: (r.get(field) is None, r.get(field)), reverse=desc)
        if self._limit is not None:
            rows = rows[: self._limit]
        return FakeResult(copy.deepcopy(rows), count=count)


class FakeRpc:
    def __init__(self, db, name, params):
        self._db = db
        self._name = name
        self._params = params

    async def execute(self):
        self._db.calls.append((self._name, "rpc"))
        if (self._name, "rpc") in self._db.fail_on:
            raise FakeSupabaseError(f"rpc {self._name} unavailable")
        self._db.rpc_calls.append((self._name, dict(self._params)))
        if self._name == "award_user_rewards":
            for profile in self._db.tables.get("profiles", []):
                if profile.get("id") == self._params["p_user_id"]:
                    profile["coins"] = profile.get("coins", 0) + self._params["p_coins"]
                    profile["xp"] = profile.get("xp", 0) + self._params["p_xp"]
        return FakeResult([])


class FakeSupabase:
    """In-memory stand-in for the async Supabase client.

    ``fail_on`` holds ``(table, action)`` pairs (``action`` is select, insert,
    update or rpc) that raise instead of running.
    """

    def __init__(self, tables=None):
        self.tables = {name: [dict(row) for row in rows] for name, rows in (tables or {}).items()}
        self.fail_on = set()
        self.calls = []
        self.rpc_calls = []
        self._clock = itertools.count(1)

    def store(self, name, row):
        record = dict(row)
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("created_at", (_EPOCH + timedelta(seconds=next(self._clock))).isoformat())
        self.tables.setdefault(name, []).append(record)
        return record

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)


FREE_USER = "11111111-1111-1111-1111-111111111111"
PLUS_USER = "22222222-2222-2222-2222-222222222222"
UNLIMITED_USER = "33333333-3333-3333-3333-333333333333"

PS_101 = "a0000000-0000-4000-8000-000000000101"
PS_301 = "a0000000-0000-4000-8000-000000000301"
PS_LOOSE = "a0000000-0000-4000-8000-000000000999"


def curriculum():
    """Three zones; zone 1 has two topics, zones 2 and 3 one each, zone 4 none."""
    return {
        "zones": [
            {"id": 1, "level": 1, "name": "Beginner"},
            {"id": 2, "level": 2, "name": "Elementary"},
            {"id": 3, "level": 3, "name": "Intermediate"},
            {"id": 4, "level": 4, "name": "Advanced"},
        ],
        "topics": [
            {"topic_id": 10, "zone_id": 1, "slug": "greetings", "title": "Greetings"},
            {"topic_id": 11, "zone_id": 1, "slug": "numbers", "title": "Numbers"},
            {"topic_id": 20, "zone_id": 2, "slug": "family", "title": "Family"},
            {"topic_id": 30, "zone_id": 3, "slug": "classifiers", "title": "Classifiers"},
        ],
        "lessons": [
            {"id": 101, "topic_id": 10, "sort_order": 1, "slug": "xin-chao", "title": "Xin chao"},
            {"id": 102, "topic_id": 10, "sort_order": 2, "slug": "tam-biet", "title": "Tam biet"},
            {"id": 111, "topic_id": 11, "sort_order": 1, "slug": "mot-hai-ba", "title": "Mot hai ba"},
            {"id": 201, "topic_id": 20, "sort_order": 1, "slug": "bo-me", "title": "Bo me"},
            {"id": 202, "topic_id": 20, "sort_order": 2, "slug": "anh-chi", "title": "Anh chi"},
            {"id": 301, "topic_id": 30, "sort_order": 1, "slug": "cai-con", "title": "Cai con"},
        ],
        "practice_sets": [
            {"id": PS_101, "lesson_id": 101, "topic_id": 10, "coin_reward": 10, "xp_reward": 20, "pass_threshold": None},
            {"id": PS_301, "lesson_id": 301, "topic_id": 30, "coin_reward": 15, "xp_reward": 30, "pass_threshold": 0.9},
            {"id": PS_LOOSE, "lesson_id": None, "topic_id": None, "coin_reward": 5, "xp_reward": 5, "pass_threshold": 0.6},
        ],
        "profiles": [
            {"id": FREE_USER, "subscription_type": "FREE", "coins": 0, "xp": 0},
            {"id": PLUS_USER, "subscription_type": "PLUS", "coins": 0, "xp": 0},
            {"id": UNLIMITED_USER, "subscription_type": "UNLIMITED", "coins": 0, "xp": 0},
        ],
        "practice_results": [],
        "practice_result_details": [],
        "user_lesson_progress": [],
    }


def passed_row(user_id, lesson_id, topic_id):
    return {
        "id": f"ulp-{user_id[:4]}-{lesson_id}",
        "user_id": user_id,
        "lesson_id": lesson_id,
        "topic_id": topic_id,
        "status": "passed",
        "best_score_percent": 90.0,
        "total_attempts": 1,
    }
