from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from pgchain import Db, config, interface

ENVIRONMENT_VARIABLES = (
    *config.ENVIRON_MAPPING,
    config.URL_VARIABLE,
    config.ENV_VARIABLE,
    config.TEST_DATABASE_VARIABLE,
)


class CursorMock:
    def __init__(self, rows=None, status="SELECT"):
        self.description = None if rows is None else [("column",)]
        self.rowcount = -1 if rows is None else len(rows)
        self.statusmessage = status
        self.row_factory = None
        self.fetchall = AsyncMock(return_value=rows)


class PostgresConnectionMock:
    """Connection that answers each query text with canned rows or an
    exception, and records everything it was asked to run"""

    def __init__(self):
        self.responses = {}
        self.executed = []
        self.released = 0

    async def execute(self, query, params=None):
        self.executed.append((query, params))
        response = self.responses.get(query)
        if isinstance(response, Exception):
            raise response
        return CursorMock(response)

    @property
    def queries(self):
        return [query for query, _ in self.executed]

    async def __aenter__(self, *args, **kwargs):
        return self

    async def __aexit__(self, *args, **kwargs):
        self.released += 1


@pytest.fixture(autouse=True)
def reset_db():
    Db.reset()
    yield
    Db.reset()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for variable in ENVIRONMENT_VARIABLES:
        monkeypatch.delenv(variable, raising=False)
    monkeypatch.setattr(config, "_dotenv_loaded", True)


@pytest.fixture
def postgres_connection():
    return PostgresConnectionMock()


@pytest.fixture
def postgres_connection_context(postgres_connection):
    return Mock(return_value=postgres_connection)


@pytest.fixture(autouse=True)
def mock_postgres_pool(request, monkeypatch, postgres_connection_context):
    if request.node.get_closest_marker("integration"):
        return None
    pool = AsyncMock()
    mock = MagicMock(return_value=pool)
    pool.connection = postgres_connection_context
    monkeypatch.setattr(interface, "AsyncConnectionPool", mock)
    return mock


@pytest.fixture
def credentials():
    return {"user": "user", "password": "password", "database": "db"}


@pytest.fixture
def db(credentials):
    return Db(**credentials)


@pytest.fixture
def make_connection():
    return PostgresConnectionMock
