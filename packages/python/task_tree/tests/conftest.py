from __future__ import annotations

import copy
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest
from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError

from task_tree import completions, repo
from task_tree.models import TaskNode


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, expected in query.items():
        value = doc.get(key)
        if isinstance(expected, dict) and "$in" in expected:
            if value not in expected["$in"]:
                return False
        elif value != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    async def __aiter__(self):
        for doc in self._docs:
            yield doc


class FakeCollection:
    """
    In-memory stand-in for the handful of Motor collection calls the
    repository makes. Documents are copied in and out so the repository
    never mutates stored state by accident.
    """

    def __init__(self) -> None:
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.bulk_writes: List[List[Any]] = []
        self.sessions: List[Any] = []
        self.on_bulk_write: Optional[Callable[["FakeCollection"], None]] = None
        self.on_update_one: Optional[Callable[["FakeCollection"], None]] = None

    def seed(self, *nodes: TaskNode) -> None:
        for node in nodes:
            self.docs[node.id] = repo._model_to_doc(node)

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        return FakeCursor([copy.deepcopy(d) for d in self.docs.values() if _matches(d, query)])

    async def find_one(self, query: Dict[str, Any]):
        for doc in self.docs.values():
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def insert_one(self, doc: Dict[str, Any]):
        if doc["_id"] in self.docs:
            raise DuplicateKeyError(f"E11000 duplicate key: {doc['_id']}")
        self.docs[doc["_id"]] = copy.deepcopy(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def insert_many(self, docs: List[Dict[str, Any]]):
        for doc in docs:
            self.docs[doc["_id"]] = copy.deepcopy(doc)
        return SimpleNamespace(inserted_ids=[doc["_id"] for doc in docs])

    def _update(self, query: Dict[str, Any], update: Dict[str, Any], many: bool) -> int:
        matched = 0
        for doc in self.docs.values():
            if _matches(doc, query):
                doc.update(copy.deepcopy(update["$set"]))
                matched += 1
                if not many:
                    break
        return matched

    async def update_one(self, query, update, session=None):
        if self.on_update_one is not None:
            self.on_update_one(self)
        matched = self._update(query, update, many=False)
        return SimpleNamespace(matched_count=matched, modified_count=matched)

    async def update_many(self, query, update, session=None):
        matched = self._update(query, update, many=True)
        return SimpleNamespace(matched_count=matched, modified_count=matched)

    async def delete_one(self, query, session=None):
        for key, doc in list(self.docs.items()):
            if _matches(doc, query):
                del self.docs[key]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def bulk_write(self, operations, ordered=True, session=None):
        if self.on_bulk_write is not None:
            self.on_bulk_write(self)
        self.bulk_writes.append(list(operations))
        self.sessions.append(session)
        matched = sum(self._update(op._filter, op._doc, many=False) for op in operations)
        return SimpleNamespace(matched_count=matched, modified_count=matched)

    def position(self, task_id: str) -> float:
        return self.docs[task_id]["position"]


@pytest.fixture()
def collection(monkeypatch) -> FakeCollection:
    fake = FakeCollection()
    monkeypatch.setattr(repo, "_collection", lambda: fake)
    return fake


@pytest.fixture()
def completion_collection(monkeypatch) -> FakeCollection:
    fake = FakeCollection()
    monkeypatch.setattr(completions, "_collection", lambda: fake)
    return fake


@pytest.fixture()
def roles(monkeypatch) -> Dict[tuple, bool]:
    """
    Grants keyed by (team_id, user_id, role value). Admins are granted
    member access as well, mirroring require_team_role.
    """

    grants: Dict[tuple, bool] = {}

    async def fake_require(team_id, user_id, role):
        role_value = getattr(role, "value", role)
        if grants.get((team_id, user_id, role_value)):
            return
        if role_value == "member" and grants.get((team_id, user_id, "admin")):
            return
        raise HTTPException(status_code=403, detail="Forbidden")

    monkeypatch.setattr(repo, "require_team_role", fake_require)
    monkeypatch.setattr(completions, "require_team_role", fake_require)
    return grants


def make_task(task_id: str, position: float, parent_id: Optional[str] = None, **extra) -> TaskNode:
    return TaskNode(
        id=task_id,
        title=extra.pop("title", task_id),
        parent_id=parent_id,
        position=position,
        team_id=extra.pop("team_id", "team-1"),
        **extra,
    )


@pytest.fixture()
def task_factory() -> Callable[..., TaskNode]:
    return make_task
