from typing import Any, Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fieldsync import models  # noqa: F401
from fieldsync import utility_api
from fieldsync.db import Base
from fieldsync.main import app, get_db, get_utility_api


class FakeUtilityApi:
    """Stands in for UtilityApiClient; records every call in order.

    ``responses`` maps an endpoint path to an envelope, to None (no data),
    to an exception instance to raise, or to a callable receiving the request body.
    """

    def __init__(self, responses: Optional[dict] = None, login_payload: Any = None):
        self.responses = dict(responses or {})
        self.login_payload = login_payload
        self.calls: list[tuple[str, Optional[str], Any]] = []

    def fetch(self, path: str, token: str, body: Any = None, strict: bool = False) -> Optional[dict]:
        self.calls.append((path, token, body))
        response = self.responses.get(path)
        if callable(response):
            response = response(body)
        if isinstance(response, Exception):
            raise response
        return response

    def login(self, username: str, password: str) -> Any:
        self.calls.append((utility_api.LOGIN, None, {"username": username, "password": password}))
        if isinstance(self.login_payload, Exception):
            raise self.login_payload
        return self.login_payload

    def paths(self) -> list[str]:
        return [path for path, _, _ in self.calls]


def zones_by_area(zones: dict[str, list[dict]]) -> Callable[[dict], dict]:
    def respond(body: dict) -> dict:
        return {"service_zones": zones.get(body["parent_id"], [])}

    return respond


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_client(session_factory):
    def _make_client(api: FakeUtilityApi) -> TestClient:
        def override_get_db():
            session = session_factory()
            try:
                yield session
            finally:
                session.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_utility_api] = lambda: api
        return TestClient(app)

    yield _make_client
    app.dependency_overrides.clear()
