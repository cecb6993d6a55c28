import pytest

from apps.store import AssociationRecord, RecordStore, StoreError, TABLE


def test_add_and_list(store):
    store.add_association(AssociationRecord("a", 1))
    store.add_association(AssociationRecord("b", 1))
    assert sorted(store.list_external_ids(1)) == ["a", "b"]


def test_records_are_scoped_to_chat(store):
    store.add_association(AssociationRecord("a", 1))
    assert store.list_external_ids(2) == []


def test_remove_missing_record_is_not_an_error(store):
    assert store.remove_association(AssociationRecord("nope", 1)) == 0


def test_remove_only_matches_own_chat(store):
    store.add_association(AssociationRecord("a", 1))
    store.add_association(AssociationRecord("a", 2))
    assert store.remove_association(AssociationRecord("a", 1)) == 1
    assert store.list_external_ids(2) == ["a"]


def test_duplicate_pair_is_rejected(store):
    store.add_association(AssociationRecord("a", 1))
    with pytest.raises(StoreError):
        store.add_association(AssociationRecord("a", 1))


def test_schema_creation_is_idempotent(store):
    store.ensure_schema()
    assert store.query(f"SELECT COUNT(*) AS n FROM {TABLE}")[0].n == 0


def test_errors_are_wrapped(store):
    with pytest.raises(StoreError):
        store.query("SELECT * FROM missing_table")
    with pytest.raises(StoreError):
        store.execute("INSERT INTO missing_table VALUES (1)")


def test_from_dsn_uses_shared_engine():
    s = RecordStore.from_dsn("sqlite://")
    s.ensure_schema()
    s.add_association(AssociationRecord("x", 5))
    assert s.list_external_ids(5) == ["x"]
    s.dispose()
