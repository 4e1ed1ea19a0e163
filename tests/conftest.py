import os
import sys
from types import SimpleNamespace

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from eduquiz.backend import Backend
from eduquiz.models import QuizItem


# ----------------------------------------------------------------------
# Supabase クライアントのフェイク
# ----------------------------------------------------------------------
def _lookup(row, path):
    """"quizzes.subject" のようなドット区切りで埋め込み行を辿る。"""
    value = row
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.action = "select"
        self.payload = None
        self.want_count = False
        self.filters = []
        self.orders = []
        self.row_limit = None

    # 取得系
    def select(self, columns="*", count=None):
        self.action = "select"
        self.want_count = count == "exact"
        return self

    def eq(self, column, value):
        self.filters.append(lambda r: _lookup(r, column) == value)
        return self

    def gte(self, column, value):
        self.filters.append(lambda r: (_lookup(r, column) or "") >= value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda r: (_lookup(r, column) or "") <= value)
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    # 書き込み系
    def insert(self, rows):
        self.action = "insert"
        self.payload = rows
        return self

    def update(self, changes):
        self.action = "update"
        self.payload = changes
        return self

    def delete(self):
        self.action = "delete"
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        self.client.calls.append((self.table, self.action))
        if self.table in self.client.failing_tables:
            raise RuntimeError(f"{self.table} is unavailable")

        rows = self.client.tables.setdefault(self.table, [])

        if self.action == "insert":
            inserted = []
            for r in self.payload:
                new = dict(r)
                new.setdefault("id", f"{self.table}-{len(rows) + 1}")
                rows.append(new)
                inserted.append(new)
            return SimpleNamespace(data=inserted, count=None)

        if self.action == "update":
            updated = []
            for r in rows:
                if self._matches(r):
                    r.update(self.payload)
                    updated.append(r)
            return SimpleNamespace(data=updated, count=None)

        if self.action == "delete":
            kept = [r for r in rows if not self._matches(r)]
            removed = [r for r in rows if self._matches(r)]
            self.client.tables[self.table] = kept
            return SimpleNamespace(data=removed, count=None)

        result = [r for r in rows if self._matches(r)]
        for column, desc in reversed(self.orders):
            result.sort(key=lambda r: (_lookup(r, column) is None, _lookup(r, column)), reverse=desc)
        count = len(result) if self.want_count else None
        if self.row_limit is not None:
            result = result[:self.row_limit]
        return SimpleNamespace(data=[dict(r) for r in result], count=count)


class FakeAuth:
    def __init__(self):
        self.users = {}
        self.signed_out = False

    def add_user(self, user_id, email, password):
        self.users[email] = {"id": user_id, "email": email, "password": password}

    def sign_in_with_password(self, credentials):
        user = self.users.get(credentials["email"])
        if user is None or user["password"] != credentials["password"]:
            raise RuntimeError("Invalid login credentials")
        return SimpleNamespace(
            user=SimpleNamespace(id=user["id"], email=user["email"]),
            session=SimpleNamespace(access_token=f"token-{user['id']}"),
        )

    def sign_up(self, credentials):
        user_id = f"user-{len(self.users) + 1}"
        self.add_user(user_id, credentials["email"], credentials["password"])
        return SimpleNamespace(user=SimpleNamespace(id=user_id, email=credentials["email"]), session=None)

    def sign_out(self):
        self.signed_out = True


class FakeSupabase:
    """supabase.Client のうち Backend が使う部分だけを真似る。"""

    def __init__(self, tables=None):
        self.tables = tables or {}
        self.calls = []
        self.failing_tables = set()
        self.auth = FakeAuth()

    def table(self, name):
        return FakeQuery(self, name)


class ManualClock:
    """time.monotonic の代わり。advance() でだけ進む。"""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


# ----------------------------------------------------------------------
# fixtures
# ----------------------------------------------------------------------
@pytest.fixture
def fake_client():
    return FakeSupabase()


@pytest.fixture
def backend(fake_client):
    return Backend(fake_client)


@pytest.fixture
def clock():
    return ManualClock()


def make_quiz(quiz_id, level, answer, category="Solving", subject="Arithmetic Sequence", **extra):
    return QuizItem(
        id=quiz_id,
        subject=subject,
        category=category,
        level=level,
        question=extra.pop("question", f"Question {quiz_id}"),
        answer=answer,
        solution=extra.pop("solution", ""),
        **extra,
    )


@pytest.fixture
def quiz_factory():
    return make_quiz
