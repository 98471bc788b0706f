from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PROXY_API_BASE_URL"] = "http://proxy.test/api"

from wmsdash.database import Base  # noqa: E402
from wmsdash.apps.accounts import models as account_models  # noqa: E402
from wmsdash.apps.imports import models as import_models  # noqa: E402


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(
        bind=engine,
        tables=[
            account_models.DashboardSession.__table__,
            import_models.ImportJob.__table__,
        ],
    )
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def dashboard_session(db_session):
    session = account_models.DashboardSession(
        odoo_session_id="odoo-session-1",
        uid="7",
        partner_id="3",
        name="Mitchell Admin",
        email="admin@example.com",
        tenant_id="tenant-a",
        odoo_base="https://odoo.example.com",
        odoo_db="prod",
    )
    db_session.add(session)
    db_session.commit()
    return session


# ---------------------------------------------------------------------------
# Proxy fakes
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None, content=b""):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else str(payload))
        self.content = content

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload


class FakeHTTP:
    """
    Stands in for requests.Session. Routes are keyed by (METHOD, path below
    the proxy base URL); each route holds a list of responses served in
    order (the last one repeats). A route entry may be an exception to raise.
    """

    base_url = "http://proxy.test/api"

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, *responses):
        self.routes.setdefault((method.upper(), path), []).extend(responses)
        return self

    def json(self, method, path, payload, status_code=200):
        return self.add(method, path, FakeResponse(status_code, payload))

    def request(self, method, url, json=None, params=None, files=None, headers=None, timeout=None):
        path = url[len(self.base_url):] if url.startswith(self.base_url) else url
        self.calls.append(
            {
                "method": method.upper(),
                "path": path,
                "json": json,
                "params": params,
                "files": files,
                "headers": headers or {},
                "timeout": timeout,
            }
        )
        queue = self.routes.get((method.upper(), path))
        if not queue:
            return FakeResponse(404, text=f"no route for {method} {path}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def calls_to(self, method, path):
        return [c for c in self.calls if c["method"] == method.upper() and c["path"] == path]


@pytest.fixture()
def fake_http():
    return FakeHTTP()


@pytest.fixture()
def proxy_client(fake_http):
    from wmsdash.apps.proxy import ProxyClient

    return ProxyClient(
        base_url=FakeHTTP.base_url,
        odoo_base="https://odoo.example.com",
        odoo_db="prod",
        tenant_id="tenant-a",
        odoo_session_id="odoo-session-1",
        http=fake_http,
        max_retries=2,
        backoff_sec=0.1,
        sleep=lambda _seconds: None,
    )


@pytest.fixture()
def data_store(proxy_client):
    from wmsdash.apps.data.store import DataStore

    return DataStore(proxy_client)


@pytest.fixture()
def fake_response():
    return FakeResponse
