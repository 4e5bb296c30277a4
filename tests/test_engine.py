import asyncio
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from rowscrub.engine import RunState, ScrubEngine
from rowscrub.errors import ConfigurationError, ErrorCategory, UnresolvableTypeError
from rowscrub.generator import FakerGenerator
from rowscrub.metrics import records_scrubbed_total
from tests.fakes import formatters
from tests.fakes.fake_storage import InMemoryStorage
from tests.fakes.generators import StubGenerator


def _users():
    return [
        {
            "id": 1,
            "first_name": "George",
            "last_name": "Costanza",
            "email": "gcostanza@hotmail.com",
        },
        {
            "id": 2,
            "first_name": "Cosmo",
            "last_name": "Kramer",
            "email": "cosmo@kramerica.com",
        },
    ]


USERS_CONFIG = {
    "users": {
        "first_name": "firstName",
        "last_name": "lastName",
        "email": "safeEmail",
        "password": lambda fake, value: fake.password(),
    }
}


def _run(engine, config, storage, generator=None, stop=None):
    return asyncio.run(engine.run(config, storage, generator or StubGenerator(), stop=stop))


def test_desired_user_data_gets_scrubbed():
    users = [dict(u, password="hunter2") for u in _users()]
    storage = InMemoryStorage({"users": users})
    engine = ScrubEngine()
    report = _run(engine, USERS_CONFIG, storage, FakerGenerator(seed=11))

    assert report.ok
    assert engine.state is RunState.COMPLETED
    assert report.tables["users"].records_transformed == 2
    for original in users:
        row = storage.row("users", original["id"])
        assert row["id"] == original["id"]
        for column in ("first_name", "last_name", "email", "password"):
            assert row[column] != original[column]


def test_invokable_type_name_field_formatter():
    formatters.calls.clear()
    storage = InMemoryStorage({"users": _users()[:1]})
    report = _run(
        ScrubEngine(), {"users": {"first_name": "tests.fakes.formatters.FooFormatter"}}, storage
    )
    assert report.ok
    assert storage.row("users", 1)["first_name"] == "Foo"
    assert storage.row("users", 1)["last_name"] == "Costanza"
    assert formatters.calls[-1][1] == "George"


def test_table_level_formatter_overwrites_returned_keys_only():
    fake = StubGenerator()

    def scrub_user(generator, record):
        assert generator is fake
        assert record["first_name"] == "George"
        return {"first_name": "Foo", "id": 500}

    storage = InMemoryStorage({"users": _users()[:1]})
    report = _run(ScrubEngine(), {"users": scrub_user}, storage, fake)

    assert report.ok
    assert storage.row("users", 1) == {
        "id": 1,
        "first_name": "Foo",
        "last_name": "Costanza",
        "email": "gcostanza@hotmail.com",
    }


def test_words_argument_is_respected():
    storage = InMemoryStorage({"users": _users()})
    report = _run(
        ScrubEngine(), {"users": {"first_name": "words:3,true"}}, storage, FakerGenerator(seed=2)
    )
    assert report.ok
    for pk in (1, 2):
        assert len(storage.row("users", pk)["first_name"].split()) == 3


def test_closure_taking_only_the_generator():
    users = [dict(u, password="hunter2") for u in _users()]
    storage = InMemoryStorage({"users": users})
    report = _run(
        ScrubEngine(),
        {"users": {"password": lambda fake: fake.password()}},
        storage,
        FakerGenerator(seed=4),
    )
    assert report.ok
    assert report.records_transformed == 2
    for pk in (1, 2):
        assert storage.row("users", pk)["password"] != "hunter2"


def test_words_as_list_is_a_configuration_failure_per_record():
    storage = InMemoryStorage({"users": _users()[:1]})
    report = _run(
        ScrubEngine(), {"users": {"first_name": "words:3,false"}}, storage, FakerGenerator(seed=2)
    )
    [failure] = report.failures
    assert failure.category is ErrorCategory.CONFIGURATION
    assert "as_text" in failure.error
    assert storage.row("users", 1)["first_name"] == "George"


def test_unknown_generator_is_a_single_record_failure():
    storage = InMemoryStorage({"users": _users()[:1]})
    engine = ScrubEngine()
    report = _run(engine, {"users": {"first_name": "noSuchThing"}}, storage)

    assert not report.ok
    assert report.status == "completed_with_errors"
    assert engine.state is RunState.COMPLETED_WITH_ERRORS
    assert len(report.failures) == 1
    failure = report.failures[0]
    assert (failure.table, failure.primary_key) == ("users", 1)
    assert failure.category is ErrorCategory.GENERATOR
    assert storage.row("users", 1)["first_name"] == "George"
    assert storage.updates == []


def test_write_failure_does_not_stop_the_table():
    storage = InMemoryStorage({"users": _users()})
    storage.fail_updates.add(("users", 1))
    report = _run(ScrubEngine(), {"users": {"first_name": "firstName"}}, storage)

    assert [(f.primary_key, f.category) for f in report.failures] == [(1, ErrorCategory.STORAGE)]
    assert report.failures[0].outcome == "skipped"
    assert report.unknown_outcomes == []
    assert report.tables["users"].records_transformed == 1
    assert report.tables["users"].records_failed == 1
    assert storage.row("users", 1)["first_name"] == "George"
    assert storage.row("users", 2)["first_name"] != "Cosmo"


def test_paging_covers_every_record_in_order():
    rows = [{"id": i, "name": f"person {i}", "city": "Queens"} for i in range(1, 8)]
    storage = InMemoryStorage({"people": rows})
    report = _run(ScrubEngine(page_size=3), {"people": {"name": "firstName"}}, storage)

    assert report.ok
    assert report.tables["people"].records_transformed == 7
    assert report.tables["people"].pages == 3
    assert storage.pages_fetched == [("people", None), ("people", 3), ("people", 6)]
    for i in range(1, 8):
        row = storage.row("people", i)
        assert row["name"] != f"person {i}"
        assert row["city"] == "Queens"


def test_page_failure_aborts_only_that_table():
    storage = InMemoryStorage(
        {
            "orders": [{"id": i, "note": "n"} for i in range(1, 5)],
            "users": _users(),
        }
    )
    storage.fail_pages["orders"] = 2
    config = {"orders": {"note": "word"}, "users": {"first_name": "firstName"}}
    report = _run(ScrubEngine(page_size=2), config, storage)

    assert report.status == "completed_with_errors"
    assert report.failed_tables == ["orders"]
    assert "connection lost" in report.tables["orders"].error
    assert report.tables["orders"].records_transformed == 2
    assert report.tables["users"].records_transformed == 2
    assert storage.row("orders", 3)["note"] == "n"


def test_missing_table_is_a_warning():
    storage = InMemoryStorage({"users": _users()})
    report = _run(
        ScrubEngine(), {"ghosts": {"name": "firstName"}, "users": {"email": "safeEmail"}}, storage
    )
    assert report.ok
    assert "ghosts" not in report.tables
    assert len(report.warnings) == 1 and "ghosts" in report.warnings[0]


def test_configuration_errors_fail_before_any_write():
    storage = InMemoryStorage({"users": _users()})
    engine = ScrubEngine()
    with pytest.raises(ConfigurationError):
        _run(engine, {"users": {"first_name": None}}, storage)
    assert engine.state is RunState.FAILED

    with pytest.raises(UnresolvableTypeError):
        _run(engine, {"users": "tests.fakes.formatters.Missing"}, storage)
    assert storage.updates == []
    assert storage.pages_fetched == []


def test_stop_event_cancels_between_pages():
    storage = InMemoryStorage({"people": [{"id": i, "name": "x"} for i in range(1, 7)]})
    stop = asyncio.Event()

    def name(fake, value):
        stop.set()
        return "scrubbed"

    engine = ScrubEngine(page_size=2)
    report = _run(engine, {"people": {"name": name}}, storage, stop=stop)

    assert report.cancelled
    assert report.status == "cancelled"
    assert engine.state is RunState.CANCELLED
    # The page in progress is finished before stopping.
    assert report.tables["people"].records_transformed == 2
    assert storage.row("people", 3)["name"] == "x"


def test_slow_page_fetch_times_out():
    storage = InMemoryStorage({"users": _users()})
    storage.page_delay = 0.5
    report = _run(ScrubEngine(timeout=0.05), {"users": {"first_name": "firstName"}}, storage)

    result = report.tables["users"]
    assert result.error is not None and "timed out" in result.error
    assert result.records_transformed == 0


def test_timed_out_write_is_reported_with_unknown_outcome():
    storage = InMemoryStorage({"users": _users()[:1]})
    storage.update_delay = 0.3
    report = _run(ScrubEngine(timeout=0.05), {"users": {"first_name": "firstName"}}, storage)

    assert not report.ok
    [failure] = report.failures
    assert failure.category is ErrorCategory.TIMEOUT
    assert failure.outcome == "unknown"
    assert report.unknown_outcomes == [failure]
    assert any("write outcome unknown" in line for line in report.summary_lines())
    assert report.to_dict()["failures"][0]["outcome"] == "unknown"


def test_tables_run_concurrently():
    config = {name: {"name": "firstName"} for name in ("a", "b", "c")}
    storage = InMemoryStorage(
        {name: [{"id": i, "name": "x"} for i in range(1, 4)] for name in config}
    )
    report = _run(ScrubEngine(max_concurrent_tables=3), config, storage)
    assert report.ok
    assert report.records_transformed == 9


def test_running_twice_is_safe():
    storage = InMemoryStorage({"users": _users()})
    engine = ScrubEngine()
    generator = FakerGenerator(seed=9)
    config = {"users": {"first_name": "firstName", "email": "safeEmail"}}

    first = _run(engine, config, storage, generator)
    after_first = {pk: dict(row) for pk, row in storage.tables["users"].items()}
    second = _run(engine, config, storage, generator)

    assert first.ok and second.ok
    assert first.tables["users"].records_transformed == 2
    assert second.tables["users"].records_transformed == 2
    assert sorted(storage.tables["users"]) == [1, 2]
    assert storage.row("users", 2)["last_name"] == "Kramer"
    assert after_first[1]["last_name"] == "Costanza"


def test_records_counter_tracks_writes():
    records_scrubbed_total.reset()
    storage = InMemoryStorage({"users": _users()})
    _run(ScrubEngine(), {"users": {"email": "safeEmail"}}, storage)
    assert records_scrubbed_total.value == 2


def test_engine_rejects_bad_sizes():
    with pytest.raises(ValueError):
        ScrubEngine(page_size=0)
    with pytest.raises(ValueError):
        ScrubEngine(max_concurrent_tables=0)
