"""
Shared fixtures: an in-memory stand-in for the Supabase client, a scripted
pair generation provider and helpers for minting session tokens.
"""

import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("OPENROUTER_API_KEY", "test-openrouter-key")

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
import copy
import uuid

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from postgrest.exceptions import APIError
from supabase import AuthError

from main import app
from linguapairs.config import get_settings
from linguapairs.controllers.ai_provider import ProviderResult, get_ai_provider
from linguapairs.database import get_db
from linguapairs.errors import GenerationOutputError
from linguapairs.models import GeneratedPair


def utc_iso(dt: Optional[datetime] = None) -> str:
    return (dt or datetime.now(timezone.utc)).isoformat()


# In-memory Supabase

class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Supports the subset of the postgrest query builder the controllers use"""

    TIMESTAMP_COLUMNS = {
        "pairs": "added_at",
        "pair_flags": "flagged_at",
    }

    def __init__(self, store: "FakeSupabase", table: str):
        self.store = store
        self.table = table
        self.action = "select"
        self.columns: List[str] = ["*"]
        self.count_mode = None
        self.payload: Any = None
        self.filters = []
        self.orders = []
        self.offset = 0
        self.end: Optional[int] = None
        self.max_rows: Optional[int] = None
        self.single = False

    def select(self, columns: str = "*", count=None):
        self.action = "select"
        self.columns = [c.strip() for c in columns.split(",") if c.strip()]
        self.count_mode = count
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def is_(self, column, value):
        if value == "null":
            self.filters.append(lambda row: row.get(column) is None)
        else:
            self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def range(self, start, end):
        self.offset = start
        self.end = end
        return self

    def limit(self, size):
        self.max_rows = size
        return self

    def maybe_single(self):
        self.single = True
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self.store.tables[self.table] if all(f(row) for f in self.filters)]

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if "*" in self.columns:
            return copy.deepcopy(row)
        return {column: copy.deepcopy(row.get(column)) for column in self.columns}

    def _insert(self):
        rows = self.payload if isinstance(self.payload, list) else [self.payload]
        inserted = []
        for data in rows:
            row = dict(data)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", utc_iso())
            if self.table in self.TIMESTAMP_COLUMNS:
                row.setdefault(self.TIMESTAMP_COLUMNS[self.table], utc_iso())
            for columns in self.store.unique.get(self.table, []):
                key = tuple(row.get(c) for c in columns)
                if any(tuple(existing.get(c) for c in columns) == key for existing in self.store.tables[self.table]):
                    raise APIError({"code": "23505", "message": "duplicate key value violates unique constraint"})
            self.store.tables[self.table].append(row)
            inserted.append(copy.deepcopy(row))
        return FakeResponse(inserted)

    def execute(self):
        if self.store.fail_tables.get(self.table):
            raise APIError({"code": "XX000", "message": f"{self.table} unavailable"})

        if self.action == "insert":
            return self._insert()

        if self.action == "update":
            matched = self._matching()
            for row in matched:
                row.update(self.payload)
            return FakeResponse([copy.deepcopy(row) for row in matched])

        if self.action == "delete":
            matched = self._matching()
            self.store.tables[self.table] = [r for r in self.store.tables[self.table] if r not in matched]
            return FakeResponse([copy.deepcopy(row) for row in matched])

        rows = self._matching()
        total = len(rows)
        for column, desc in reversed(self.orders):
            rows = sorted(rows, key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        if self.end is not None:
            rows = rows[self.offset:self.end + 1]
        if self.max_rows is not None:
            rows = rows[:self.max_rows]
        rows = [self._project(row) for row in rows]

        if self.single:
            # newer postgrest returns None for an empty maybe_single() result
            return FakeResponse(rows[0]) if rows else None
        return FakeResponse(rows, total if self.count_mode else None)


class FakeAuthError(AuthError):
    def __init__(self, message: str, code: Optional[str] = None):
        Exception.__init__(self, message)
        self.message = message
        self.code = code
        self.status = 400
        self.name = "AuthApiError"


def make_session(user_id: str, email: str):
    return SimpleNamespace(
        access_token=make_token(user_id, email),
        refresh_token="refresh-token",
        expires_in=3600,
        user=SimpleNamespace(id=user_id, email=email),
    )


class FakeAdminAuth:
    def __init__(self, auth: "FakeAuth"):
        self.auth = auth
        self.signed_out: List[str] = []
        self.password_updates: List[tuple] = []
        self.sign_out_error: Optional[FakeAuthError] = None
        self.update_error: Optional[FakeAuthError] = None

    def sign_out(self, jwt_token: str, scope: str = "global"):
        if self.sign_out_error:
            raise self.sign_out_error
        self.signed_out.append(jwt_token)

    def update_user_by_id(self, uid: str, attributes: Dict[str, Any]):
        if self.update_error:
            raise self.update_error
        self.password_updates.append((uid, attributes.get("password")))
        return SimpleNamespace(user=SimpleNamespace(id=uid))


class FakeAuth:
    def __init__(self):
        self.users: Dict[str, Dict[str, str]] = {}
        self.reset_requests: List[tuple] = []
        self.resend_requests: List[Dict[str, Any]] = []
        self.reset_error: Optional[Exception] = None
        self.valid_codes: Dict[str, tuple] = {}
        self.valid_token_hashes: Dict[str, tuple] = {}
        self.confirm_signups = True
        self.admin = FakeAdminAuth(self)

    def add_user(self, email: str, password: str) -> str:
        user_id = str(uuid.uuid4())
        self.users[email] = {"id": user_id, "password": password}
        return user_id

    def sign_in_with_password(self, credentials: Dict[str, str]):
        user = self.users.get(credentials["email"])
        if not user or user["password"] != credentials["password"]:
            raise FakeAuthError("Invalid login credentials", "invalid_credentials")
        session = make_session(user["id"], credentials["email"])
        return SimpleNamespace(user=session.user, session=session)

    def sign_up(self, credentials: Dict[str, Any]):
        if credentials["email"] in self.users:
            raise FakeAuthError("User already registered", "user_already_exists")
        user_id = self.add_user(credentials["email"], credentials["password"])
        user = SimpleNamespace(id=user_id, email=credentials["email"])
        session = None if self.confirm_signups else make_session(user_id, credentials["email"])
        return SimpleNamespace(user=user, session=session)

    def reset_password_for_email(self, email: str, options: Dict[str, Any]):
        if self.reset_error:
            raise self.reset_error
        self.reset_requests.append((email, options))

    def _session_response(self, email: str):
        user_id = self.users.get(email, {}).get("id") or str(uuid.uuid4())
        session = make_session(user_id, email)
        return SimpleNamespace(user=session.user, session=session)

    def exchange_code_for_session(self, params: Dict[str, str]):
        # a PKCE code is only redeemable together with its verifier
        entry = self.valid_codes.get(params["auth_code"])
        if entry is None or params.get("code_verifier") != entry[1]:
            raise FakeAuthError("invalid flow state, no valid flow state found", "flow_state_not_found")
        return self._session_response(entry[0])

    def verify_otp(self, params: Dict[str, str]):
        entry = self.valid_token_hashes.get(params["token_hash"])
        if entry is None or params.get("type") != entry[1]:
            raise FakeAuthError("Email link is invalid or has expired", "otp_expired")
        return self._session_response(entry[0])

    def resend(self, credentials: Dict[str, Any]):
        self.resend_requests.append(credentials)


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.unique = {"pair_flags": [("pair_id", "flagged_by")]}
        self.fail_tables: Dict[str, bool] = {}
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


class FakeDatabase:
    """Drop-in for SupabaseClient; one in-memory store serves both roles"""

    def __init__(self):
        self.service_client = FakeSupabase()

    def auth_client(self) -> FakeSupabase:
        return self.service_client

    @property
    def store(self) -> FakeSupabase:
        return self.service_client


# Scripted generation provider

class FakeProvider:
    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None

    def _result(self, count: int) -> ProviderResult:
        pairs = [
            GeneratedPair(id=str(uuid.uuid4()), term_a=f"słowo {i}", term_b=f"word {i}", type="words", register="neutral")
            for i in range(count)
        ]
        return ProviderResult(
            pairs=pairs,
            metadata={"generation_time_ms": 5, "cache_hit": False, "prompt_hash": "abc", "ai_model": "fake-model"},
            prompt_hash="abc",
        )

    def generate_from_topic(self, **kwargs) -> ProviderResult:
        self.calls.append({"kind": "topic", **kwargs})
        if self.error:
            raise self.error
        return self._result(kwargs["count"])

    def generate_from_text(self, **kwargs) -> ProviderResult:
        self.calls.append({"kind": "text", **kwargs})
        if self.error:
            raise self.error
        return self._result(kwargs["count"])


# Tokens

def make_token(user_id: str, email: Optional[str] = None, expires_in: int = 3600, audience: str = "authenticated") -> str:
    settings = get_settings()
    payload = {
        "sub": user_id,
        "email": email,
        "aud": audience,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, settings.supabase_jwt_secret, algorithm=settings.jwt_algorithm)


def bearer(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


# Seed helpers

def seed_languages(store: FakeSupabase):
    pl = {"id": str(uuid.uuid4()), "code": "pl", "name": "Polski", "name_native": "Polski",
          "flag_emoji": "🇵🇱", "sort_order": 1, "is_active": True}
    en = {"id": str(uuid.uuid4()), "code": "en", "name": "English", "name_native": "English",
          "flag_emoji": "🇬🇧", "sort_order": 2, "is_active": True}
    de = {"id": str(uuid.uuid4()), "code": "de", "name": "Deutsch", "name_native": "Deutsch",
          "flag_emoji": "🇩🇪", "sort_order": 3, "is_active": False}
    store.tables["languages"].extend([en, pl, de])
    return pl, en, de


def seed_deck(store: FakeSupabase, owner_id: str, lang_a: str, lang_b: str, visibility: str = "private", **fields):
    deck = {
        "id": str(uuid.uuid4()),
        "owner_user_id": owner_id,
        "title": "Podróże",
        "description": "Słówka na wakacje",
        "lang_a": lang_a,
        "lang_b": lang_b,
        "visibility": visibility,
        "created_at": utc_iso(),
        "updated_at": utc_iso(),
        "deleted_at": None,
    }
    deck.update(fields)
    store.tables["decks"].append(deck)
    return deck


def seed_pairs(store: FakeSupabase, deck_id: str, count: int, start: Optional[datetime] = None):
    start = start or datetime(2025, 1, 1, tzinfo=timezone.utc)
    pairs = []
    for i in range(count):
        pair = {
            "id": str(uuid.uuid4()),
            "deck_id": deck_id,
            "term_a": f"słowo {i}",
            "term_b": f"word {i}",
            "type": "words",
            "register": "neutral",
            "added_at": utc_iso(start + timedelta(minutes=i)),
            "updated_at": utc_iso(start + timedelta(minutes=i)),
            "deleted_at": None,
        }
        store.tables["pairs"].append(pair)
        pairs.append(pair)
    return pairs


# Fixtures

@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def store(fake_db) -> FakeSupabase:
    return fake_db.store


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def client(fake_db, fake_provider):
    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[get_ai_provider] = lambda: fake_provider
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def languages(store):
    return seed_languages(store)


@pytest.fixture
def owner_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def other_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def generation_error():
    return GenerationOutputError("Response is not valid JSON")
