import pytest
from hypothesis import given, strategies as st

from batchdb.config import DbConfig
from batchdb.conditions import Between, BeginsWith, GreaterThan
from batchdb.requests import DeleteRequest, PutRequest
from batchdb.storage.local_storage import LocalService
from batchdb.table import Table
from batchdb.updates import DynamoAddToStringSet, DynamoIncrement
from fakes import no_sleep_backoff


def make_users(service):
    table = Table(service, "users", "id")
    table.get_driver.backoff_factory = no_sleep_backoff
    table.write_driver.backoff_factory = no_sleep_backoff
    return table


def test_put_get_delete(local):
    users = make_users(local)

    users.put({"id": "u1", "name": "Alice"})

    assert users.get({"id": "u1"}) == {"id": "u1", "name": "Alice"}
    assert users.delete({"id": "u1"}) == {"id": "u1", "name": "Alice"}
    assert users.get({"id": "u1"}) is None
    assert users.delete({"id": "u1"}) is None


def test_put_replaces_existing_record(local):
    users = make_users(local)
    users.put({"id": "u1", "name": "Alice"})
    users.put({"id": "u1", "name": "Bob"})

    assert users.scan().records == [{"id": "u1", "name": "Bob"}]


def test_returned_records_are_copies(local):
    users = make_users(local)
    users.put({"id": "u1", "tags": ["a"]})

    users.get({"id": "u1"})["tags"].append("b")

    assert users.get({"id": "u1"})["tags"] == ["a"]


def test_put_requires_key_fields(local):
    with pytest.raises(ValueError):
        make_users(local).put({"name": "keyless"})


def test_get_requires_exact_key(local):
    with pytest.raises(RuntimeError):
        make_users(local).get({"id": "u1", "extra": 1})


def test_update_creates_and_modifies(local):
    users = make_users(local)

    assert users.update({"id": "u1"}, {"logins": DynamoIncrement()}) == {"id": "u1", "logins": 1}

    users.update({"id": "u1"}, {"logins": DynamoIncrement(2), "tags": DynamoAddToStringSet("x"), "status": "ok"})
    assert users.get({"id": "u1"}) == {"id": "u1", "logins": 3, "tags": {"x"}, "status": "ok"}

    assert users.update({"id": "u1"}, {"status": None}) == {"id": "u1", "logins": 3, "tags": {"x"}}


def test_conditional_delete_is_not_supported(local):
    with pytest.raises(NotImplementedError):
        make_users(local).delete({"id": "u1"}, {"ConditionExpression": "attribute_exists(id)"})


def test_unknown_table_is_an_error():
    with pytest.raises(RuntimeError):
        LocalService().put_item("nope", {"id": "x"})


def test_query_with_sort_key_conditions(local):
    events = Table(local, "events", "user", "ts")
    for ts in [5, 1, 3, 9]:
        events.put({"user": "u1", "ts": ts})
    events.put({"user": "u2", "ts": 2})

    assert [r["ts"] for r in events.query({"user": "u1"})] == [1, 3, 5, 9]
    assert [r["ts"] for r in events.query({"user": "u1"}, reverse=True)] == [9, 5, 3, 1]
    assert [r["ts"] for r in events.query({"user": "u1", "ts": Between(2, 5)})] == [3, 5]
    assert [r["ts"] for r in events.query({"user": "u1", "ts": GreaterThan(3)})] == [5, 9]


def test_query_by_index(local):
    events = Table(local, "events", "user", "ts")
    events.put({"user": "u1", "ts": 1, "kind": "click"})
    events.put({"user": "u2", "ts": 2, "kind": "view"})
    events.put({"user": "u3", "ts": 3, "kind": "click"})

    page = events.query({"kind": "click"}, index_name="kind-index")

    assert sorted(r["user"] for r in page) == ["u1", "u3"]


def test_query_rejects_conditions_on_two_fields(local):
    events = Table(local, "events", "user", "ts")
    with pytest.raises(RuntimeError):
        events.query({"user": "u1", "ts": Between(1, 2), "kind": BeginsWith("c")})


def test_query_surfaces_continuation_key_without_looping(local):
    events = Table(local, "events", "user", "ts")
    for ts in range(5):
        events.put({"user": "u1", "ts": ts})

    first = events.query({"user": "u1"}, limit=2)
    assert [r["ts"] for r in first] == [0, 1]
    assert first.continuation_key == {"user": "u1", "ts": 1}

    second = events.query({"user": "u1"}, limit=2, pagination_token=first.continuation_key)
    assert [r["ts"] for r in second] == [2, 3]

    last = events.query({"user": "u1"}, limit=2, pagination_token=second.continuation_key)
    assert [r["ts"] for r in last] == [4]
    assert not last.has_next_page


def test_scan_pages_through_everything(local):
    users = make_users(local)
    for i in range(7):
        users.put({"id": f"u{i}"})

    seen = []
    token = None
    while True:
        page = users.scan(limit=3, pagination_token=token)
        seen.extend(r["id"] for r in page)
        if not page.has_next_page:
            break
        token = page.continuation_key

    assert seen == [f"u{i}" for i in range(7)]


def test_batch_operations(local):
    users = make_users(local)
    users.batch_put([{"id": "a"}, {"id": "b"}, {"id": "c"}])

    assert sorted(r["id"] for r in users.batch_get([{"id": "a"}, {"id": "c"}, {"id": "zz"}])) == ["a", "c"]

    users.batch_write([DeleteRequest({"id": "a"}), PutRequest({"id": "d"})])
    assert sorted(r["id"] for r in users.scan()) == ["b", "c", "d"]

    users.batch_delete([{"id": "b"}, {"id": "c"}, {"id": "d"}])
    assert users.scan().records == []


def test_batch_write_validates_requests_before_sending(local):
    users = make_users(local)
    with pytest.raises(ValueError):
        users.batch_write([PutRequest({"id": "a"}), PutRequest({"name": "keyless"})])

    assert users.scan().records == []


@given(st.integers(1, 30), st.integers(1, 7))
def test_throttled_batches_still_complete(count, batch_size):
    service = LocalService(max_batch_size=batch_size)
    service.create_table("users", "id")
    users = Table(service, "users", "id", config=DbConfig(max_batch_attempts=50, backoff_base=0, backoff_cap=0))
    ids = [f"u{i}" for i in range(count)]

    users.batch_put([{"id": i} for i in ids])
    fetched = users.batch_get([{"id": i} for i in ids])

    assert sorted(r["id"] for r in fetched) == sorted(ids)


def test_throttled_batch_reports_unprocessed_remainder():
    service = LocalService(max_batch_size=2)
    service.create_table("users", "id")
    requests = [PutRequest({"id": i}) for i in "abc"]

    result = service.batch_write({"users": requests})

    assert not result.success
    assert result.unprocessed == {"users": [PutRequest({"id": "c"})]}


def test_list_tables(local):
    assert local.list_tables() == ["events", "users"]
    assert local.list_tables(limit=1) == ["events"]


def test_persists_to_file(tmp_path):
    filename = str(tmp_path / "db.json")
    service = LocalService(filename=filename)
    service.create_table("users", "id")
    service.put_item("users", {"id": "u1", "tags": {"a", "b"}})

    reloaded = LocalService(filename=filename)
    reloaded.create_table("users", "id")

    assert reloaded.get_item("users", {"id": "u1"}) == {"id": "u1", "tags": {"a", "b"}}


def test_corrupt_file_starts_empty(tmp_path):
    filename = tmp_path / "db.json"
    filename.write_text("{ not json")

    service = LocalService(filename=str(filename))

    assert service.tables == {}


def test_batch_with_bad_request_applies_nothing(local):
    local.put_item("users", {"id": "existing"})

    with pytest.raises(RuntimeError):
        local.batch_write({"users": [
            PutRequest({"id": "a"}),
            DeleteRequest({"id": "existing"}),
            DeleteRequest({"wrong": "key"}),
        ]})

    assert local.scan("users") == ([{"id": "existing"}], None)


def test_batch_get_rejects_duplicate_keys(local):
    users = make_users(local)
    users.put({"id": "a"})

    with pytest.raises(ValueError):
        users.batch_get([{"id": "a"}, {"id": "a"}])


def test_batch_write_rejects_duplicate_keys(local):
    users = make_users(local)

    with pytest.raises(ValueError):
        users.batch_write([PutRequest({"id": "a", "v": 1}), DeleteRequest({"id": "a"})])
    with pytest.raises(ValueError):
        users.batch_put([{"id": "a", "v": 1}, {"id": "a", "v": 2}])

    assert users.scan().records == []


def test_duplicate_check_uses_whole_key(local):
    events = Table(local, "events", "user", "ts")
    events.get_driver.backoff_factory = no_sleep_backoff
    events.write_driver.backoff_factory = no_sleep_backoff

    events.batch_put([{"user": "u1", "ts": 1}, {"user": "u1", "ts": 2}])

    assert len(events.batch_get([{"user": "u1", "ts": 1}, {"user": "u1", "ts": 2}])) == 2
