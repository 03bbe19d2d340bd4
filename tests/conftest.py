"""
Shared fixtures: an in-memory stand-in for the Supabase client.

The fake records every table query and procedure call (schema, table,
operation, filters, payload) so tests can assert on exactly what the
dashboard sent, and lets a test make any (schema, table, operation) fail
with a backend error message.
"""
from types import SimpleNamespace

import httpx

import pytest
from postgrest.exceptions import APIError
from supabase import AuthError

from app.usampac import create_app
from app.usampac import auth as auth_module


class FakeAuthError(AuthError):
    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message


class FakeQuery:
    def __init__(self, backend, schema, table):
        self.backend = backend
        self.schema = schema
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.count = None
        self.head = False
        self.payload = None
        self.filters = []
        self.order_by = None
        self.limit_n = None
        self.is_single = False

    def select(self, *columns, count=None, head=None):
        self.op = "select"
        self.columns = ",".join(columns) or "*"
        self.count = count
        self.head = bool(head)
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(("eq", column, value))
        return self

    def in_(self, column, values):
        self.filters.append(("in", column, list(values)))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def single(self):
        self.is_single = True
        return self

    def _matches(self, row):
        for kind, column, value in self.filters:
            if kind == "eq" and row.get(column) != value:
                return False
            if kind == "in" and row.get(column) not in value:
                return False
        return True

    def execute(self):
        call = SimpleNamespace(
            schema=self.schema,
            table=self.table,
            op=self.op,
            columns=self.columns,
            payload=self.payload,
            filters=list(self.filters),
            order=self.order_by,
            limit=self.limit_n,
            count=self.count,
        )
        self.backend.calls.append(call)
        if (self.schema, self.table) in self.backend.unreachable_tables:
            raise httpx.ConnectError("connection refused")
        message = self.backend.errors.get((self.schema, self.table, self.op))
        if message:
            raise APIError({"message": message, "code": "XX000", "hint": None, "details": None})
        if self.op != "select":
            return SimpleNamespace(data=[self.payload] if self.payload else [], count=None)

        rows = [r for r in self.backend.rows.get((self.schema, self.table), []) if self._matches(r)]
        total = len(rows)
        if self.limit_n is not None:
            rows = rows[: self.limit_n]
        if self.is_single:
            if len(rows) != 1:
                raise APIError({"message": "JSON object requested, multiple (or no) rows returned", "code": "PGRST116"})
            return SimpleNamespace(data=rows[0], count=None)
        return SimpleNamespace(data=[] if self.head else rows, count=total if self.count else None)


class FakeRpc:
    def __init__(self, backend, schema, fn, params):
        self.backend, self.schema, self.fn, self.params = backend, schema, fn, params

    def execute(self):
        self.backend.calls.append(SimpleNamespace(schema=self.schema, table=None, op="rpc", fn=self.fn, params=self.params))
        message = self.backend.errors.get((self.schema, self.fn, "rpc"))
        if message:
            raise APIError({"message": message, "code": "P0001"})
        return SimpleNamespace(data=None, count=None)


class FakeHttpClient:
    def __init__(self, backend, name):
        self.backend = backend
        self.name = name

    def close(self):
        self.backend.closed.append(self.name)


class FakeDb:
    def __init__(self, backend, schema, headers):
        self.backend = backend
        self.schema_name = schema
        self.headers = headers
        self.session = FakeHttpClient(backend, f"db:{schema}")

    def table(self, name):
        return FakeQuery(self.backend, self.schema_name, name)

    from_ = table

    def rpc(self, fn, params):
        return FakeRpc(self.backend, self.schema_name, fn, params)


class FakeAuth:
    def __init__(self, backend):
        self.backend = backend
        self._http_client = FakeHttpClient(backend, "auth")

    def _auth_response(self, email):
        user = SimpleNamespace(id=self.backend.users[email]["id"], email=email)
        access, refresh = f"access-{email}", f"refresh-{email}"
        self.backend.tokens[access] = email
        self.backend.refresh_tokens[refresh] = email
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=access, refresh_token=refresh))

    def sign_in_with_password(self, credentials):
        user = self.backend.users.get(credentials["email"])
        if not user or user["password"] != credentials["password"]:
            raise FakeAuthError("Invalid login credentials")
        return self._auth_response(credentials["email"])

    def get_user(self, jwt):
        email = self.backend.tokens.get(jwt)
        if not email:
            raise FakeAuthError("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=self.backend.users[email]["id"], email=email))

    def refresh_session(self, refresh_token):
        email = self.backend.refresh_tokens.pop(refresh_token, None)
        if not email:
            raise FakeAuthError("Invalid Refresh Token")
        return self._auth_response(email)

    def set_session(self, access_token, refresh_token):
        self.backend.auth_calls.append(("set_session", access_token))

    def sign_out(self):
        self.backend.auth_calls.append(("sign_out", None))
        if self.backend.sign_out_error:
            raise FakeAuthError(self.backend.sign_out_error)


class FakeBackend:
    def __init__(self):
        self.rows = {}
        self.errors = {}
        self.calls = []
        self.users = {}
        self.tokens = {}
        self.refresh_tokens = {}
        self.auth_calls = []
        self.sign_out_error = None
        self.db_headers = []
        self.unreachable_tables = set()
        self.closed = []

    def add_user(self, email, password="pw", user_id=None, role="ADMIN"):
        uid = user_id or f"uid-{email}"
        self.users[email] = {"id": uid, "password": password}
        if role is not None:
            self.rows.setdefault(("public", "app_users"), []).append({"auth_sub": uid, "role": role})
        return uid

    def set_rows(self, table, rows, schema="api"):
        self.rows[(schema, table)] = rows

    def fail(self, table, op, message, schema="api"):
        self.errors[(schema, table, op)] = message

    def unreachable(self, table, schema="api"):
        """Queries on this table fail at the transport level (no HTTP answer)."""
        self.unreachable_tables.add((schema, table))

    def calls_for(self, table=None, op=None):
        return [c for c in self.calls if (table is None or c.table == table) and (op is None or c.op == op)]

    def create_client(self, url, key, options=None):
        return SimpleNamespace(auth=FakeAuth(self))

    def create_db(self, base_url, schema="public", headers=None):
        self.db_headers.append(headers)
        return FakeDb(self, schema, headers)


@pytest.fixture()
def backend(monkeypatch):
    fake = FakeBackend()
    monkeypatch.setattr("app.usampac.backend.create_client", fake.create_client)
    monkeypatch.setattr("app.usampac.backend.SyncPostgrestClient", fake.create_db)
    return fake


@pytest.fixture()
def app(backend, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    for k in ("ROLE_CHECK_MODE", "ADMIN_ROLE", "SUPABASE_API_SCHEMA", "SUPABASE_PUBLIC_SCHEMA"):
        monkeypatch.delenv(k, raising=False)
    auth_module._login_attempts.clear()
    return create_app()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def login(client, backend):
    def _login(email="admin@example.com", password="pw", role="ADMIN"):
        if email not in backend.users:
            backend.add_user(email, password, role=role)
        return client.post("/login", data={"email": email, "password": password})

    return _login


@pytest.fixture()
def post_form(client):
    def _post(url, data=None, **kwargs):
        with client.session_transaction() as sess:
            token = sess.get("csrf_token")
        return client.post(url, data={**(data or {}), "csrf_token": token}, **kwargs)

    return _post
