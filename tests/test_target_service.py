# tests/test_target_service.py

from config.target_seed import SEED_TARGET_SET
from services.target_service import TargetService


class MockQuery:
    """Chainable stand-in for a supabase-py table query."""

    def __init__(self, data):
        self._data = data

    def select(self, *a): return self
    def eq(self, *a): return self
    def order(self, *a, **k): return self
    def limit(self, *a): return self
    def execute(self): return type("Res", (), {"data": self._data})


class MockClient:
    def __init__(self, tables):
        self.tables = tables

    def table(self, name):
        return MockQuery(self.tables.get(name, []))


class BrokenClient:
    def table(self, name):
        raise RuntimeError("connection refused")


STORED = {
    "target_sets": [
        {"id": "state_ca", "name": "California adults", "universe": "Adults 18+", "geography": "CA"},
    ],
    "target_variables": [
        {
            "key": "GENDER",
            "label": "Gender",
            "position": 0,
            "categories": [
                {"key": "MALE", "label": "Male", "share": 0.49},
                {"key": "FEMALE", "label": "Female", "share": "0.51"},
            ],
        }
    ],
}


def test_seed_only_without_client():
    service = TargetService(client_factory=lambda: None)
    assert service.list_target_sets() == [SEED_TARGET_SET.summary()]
    assert service.get_target_set(SEED_TARGET_SET.id) is SEED_TARGET_SET
    assert service.get_target_set("state_ca") is None


def test_reads_target_sets_from_storage():
    service = TargetService(client_factory=lambda: MockClient(STORED))

    summaries = service.list_target_sets()
    assert [s.id for s in summaries] == ["state_ca"]

    target_set = service.get_target_set("state_ca")
    assert target_set.geography == "CA"
    gender = target_set.find_variable("GENDER")
    assert [(c.key, c.share) for c in gender.categories] == [("MALE", 0.49), ("FEMALE", 0.51)]


def test_empty_storage_lists_seed():
    service = TargetService(client_factory=lambda: MockClient({}))
    assert service.list_target_sets() == [SEED_TARGET_SET.summary()]
    assert service.get_target_set("state_ca") is None


def test_storage_failure_falls_back():
    service = TargetService(client_factory=BrokenClient)
    assert service.list_target_sets() == [SEED_TARGET_SET.summary()]
    assert service.get_target_set("state_ca") is None
    # Seed id never touches storage
    assert service.get_target_set(SEED_TARGET_SET.id) is SEED_TARGET_SET
