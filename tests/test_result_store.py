import threading

import pytest

from analysis_schema import AnalysisResult
from db import Database
from errors import PersistenceError
from result_store import RecordDraft, ResultStore

RESULT = AnalysisResult("Good trades.", ("Keep it up",), ("Late rotate",))


def text_draft(owner="player-1", text="won the round", result=RESULT):
    return RecordDraft(owner_id=owner, source_text=text, result=result, model_name="test-model")


def test_append_assigns_id_and_increasing_timestamps(store):
    first = store.append(text_draft())
    second = store.append(text_draft())

    assert first.id and second.id and first.id != second.id
    assert second.created_at > first.created_at


def test_stored_record_reads_back_identical(store):
    written = store.append(text_draft())

    assert store.get("player-1", written.id) == written
    assert store.list_for_owner("player-1") == [written]


def test_file_record_without_result(store):
    written = store.append(RecordDraft(
        owner_id="player-1",
        source_file_url="http://testserver/files/x.log",
        source_file_name="match.log",
        source_file_mime_type="text/plain",
    ))

    read = store.get("player-1", written.id)
    assert read.result is None
    assert read.source_text is None
    assert read.source_file_name == "match.log"


def test_draft_needs_exactly_one_source():
    with pytest.raises(ValueError):
        RecordDraft(owner_id="p")
    with pytest.raises(ValueError):
        RecordDraft(owner_id="p", source_text="t", source_file_url="u")


def test_records_are_scoped_by_owner_and_app(services, store):
    mine = store.append(text_draft(owner="player-1"))
    store.append(text_draft(owner="player-2"))
    other_app = ResultStore(services.database, "other-app")
    other_app.append(text_draft(owner="player-1"))

    assert store.list_for_owner("player-1") == [mine]
    assert store.get("player-2", mine.id) is None
    assert len(other_app.list_for_owner("player-1")) == 1


def test_list_is_newest_first(store):
    records = [store.append(text_draft(text=f"round {i}")) for i in range(3)]
    assert store.list_for_owner("player-1") == list(reversed(records))


def test_listen_delivers_current_set_then_each_append(store):
    existing = store.append(text_draft())
    batches = []

    registration = store.listen("player-1", batches.append)
    added = store.append(text_draft(text="next round"))
    store.append(text_draft(owner="player-2"))

    assert [[e.record for e in batch] for batch in batches] == [[existing], [added]]
    # Delivered record is the very record the writer built
    assert batches[1][0].record is added

    registration.remove()
    store.append(text_draft())
    assert len(batches) == 2
    assert store.listener_count("player-1") == 0


def test_failing_listener_does_not_break_the_write(store):
    def broken(_events):
        raise RuntimeError("listener bug")

    seen = []
    store.listen("player-1", broken)
    store.listen("player-1", seen.append)

    record = store.append(text_draft())
    assert store.get("player-1", record.id) == record
    assert seen[-1][0].record == record


def test_concurrent_writers_get_distinct_ordered_timestamps(store):
    results = []

    def write():
        for _ in range(10):
            results.append(store.append(text_draft()))

    threads = [threading.Thread(target=write) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stamps = [r.created_at for r in results]
    assert len(set(stamps)) == 40
    assert len(store.list_for_owner("player-1")) == 40


def test_database_failure_is_persistence_error(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'no_tables.db'}")  # create_all never called
    store = ResultStore(database, "test-app")

    with pytest.raises(PersistenceError):
        store.append(text_draft())
