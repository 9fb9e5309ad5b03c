import asyncio

import pytest

from db_core import mongo
from db_core.settings import MongoSettings


class StubSession:
    def __init__(self):
        self.events = []

    async def __aenter__(self):
        self.events.append("session")
        return self

    async def __aexit__(self, *exc):
        self.events.append("end_session")
        return False

    def start_transaction(self):
        session = self

        class _Transaction:
            async def __aenter__(self):
                session.events.append("start")
                return session

            async def __aexit__(self, exc_type, exc, tb):
                session.events.append("abort" if exc_type else "commit")
                return False

        return _Transaction()


class StubClient:
    def __init__(self):
        self.session = StubSession()

    async def start_session(self):
        return self.session


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("MONGO_DB_NAME", "checklists_test")
    monkeypatch.setenv("MONGO_USE_TRANSACTIONS", "yes")

    configured = MongoSettings()

    assert configured.db_name == "checklists_test"
    assert configured.use_transactions is True


def test_transaction_yields_none_when_disabled(monkeypatch):
    monkeypatch.setattr(mongo.settings, "use_transactions", False)

    async def run():
        async with mongo.transaction() as session:
            return session

    assert asyncio.run(run()) is None


def test_transaction_commits_and_aborts(monkeypatch):
    client = StubClient()
    monkeypatch.setattr(mongo.settings, "use_transactions", True)
    monkeypatch.setattr(mongo, "get_mongo_client", lambda: client)

    async def ok():
        async with mongo.transaction() as session:
            return session

    async def failing():
        async with mongo.transaction():
            raise RuntimeError("write failed")

    assert asyncio.run(ok()) is client.session
    with pytest.raises(RuntimeError):
        asyncio.run(failing())
    assert client.session.events == [
        "session", "start", "commit", "end_session",
        "session", "start", "abort", "end_session",
    ]
