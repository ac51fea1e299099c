import pytest

from courtside.repository import Repository
from scripts.seed_demo_data import DEMO_CLUB, DEMO_USERS, seed


class _FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return dict(self._data)


class _FakeDocument:
    def __init__(self, docs, doc_id):
        self._docs = docs
        self._id = doc_id

    def set(self, payload):
        self._docs[self._id] = dict(payload)


class _FakeCollection:
    def __init__(self, docs):
        self._docs = docs

    def document(self, doc_id):
        return _FakeDocument(self._docs, doc_id)

    def stream(self):
        return [_FakeSnapshot(doc_id, data) for doc_id, data in self._docs.items()]


class _FakeDB:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return _FakeCollection(self.collections.setdefault(name, {}))


@pytest.fixture
def repo():
    return Repository(_FakeDB())


def test_seed_is_repeatable(repo):
    seed(repo)
    seed(repo)

    snap = repo.snapshot()
    assert len(snap.users) == len(DEMO_USERS)
    assert snap.clubs == (DEMO_CLUB,)
    assert [s.id for s in snap.shifts] == ["shift-demo"]
    assert snap.shift("shift-demo").student_ids == ("student-1", "student-2")
