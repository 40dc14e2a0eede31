"""Tests for core.records — lifecycle, listing and persistence."""

import json
import threading

import pytest

from core.records import GenerationStore, InvalidTransition, RecordNotFound
from core.state import COMPLETED, FAILED, GENERATING, PENDING


def test_create_starts_pending():
    store = GenerationStore()
    record_id = store.create("Build a pricing page")
    record = store.get(record_id)
    assert record.status == PENDING
    assert record.prompt == "Build a pricing page"
    assert record.title == "Build a pricing page"
    assert record.created_at
    assert record.completed_at is None


def test_long_prompt_title_is_truncated():
    store = GenerationStore()
    record = store.get(store.create("word " * 40))
    assert len(record.title) <= 60
    assert record.title.endswith("...")


def test_get_unknown_returns_none():
    assert GenerationStore().get("missing") is None


def test_get_returns_copy():
    store = GenerationStore()
    record_id = store.create("p")
    store.get(record_id).status = FAILED
    assert store.get(record_id).status == PENDING


def test_full_success_lifecycle():
    store = GenerationStore()
    record_id = store.create("p")
    store.mark_generating(record_id)
    store.mark_progress(record_id, "blueprint")
    store.mark_progress(record_id, "iteration", 78.0)
    record = store.mark_completed(record_id, "uiforge/generations/x.html", 85.0)
    assert record.status == COMPLETED
    assert record.output_ref == "uiforge/generations/x.html"
    assert record.score == 85.0
    assert record.stage == "iteration"
    assert record.completed_at is not None
    assert record.error is None


def test_failure_lifecycle():
    store = GenerationStore()
    record_id = store.create("p")
    store.mark_generating(record_id)
    record = store.mark_failed(record_id, "model unavailable")
    assert record.status == FAILED
    assert record.error == "model unavailable"
    assert record.completed_at is not None


def test_cannot_complete_pending_record():
    store = GenerationStore()
    record_id = store.create("p")
    with pytest.raises(InvalidTransition):
        store.mark_completed(record_id, "key")


def test_pending_record_can_fail():
    store = GenerationStore()
    record_id = store.create("p")
    record = store.mark_failed(record_id, "could not start")
    assert record.status == FAILED
    assert record.completed_at is not None


def test_terminal_status_is_final():
    store = GenerationStore()
    record_id = store.create("p")
    store.mark_generating(record_id)
    store.mark_completed(record_id, "key")
    with pytest.raises(InvalidTransition):
        store.mark_failed(record_id, "late failure")
    assert store.get(record_id).status == COMPLETED


def test_generating_only_once():
    store = GenerationStore()
    record_id = store.create("p")
    store.mark_generating(record_id)
    with pytest.raises(InvalidTransition):
        store.mark_generating(record_id)


def test_update_unknown_raises():
    with pytest.raises(RecordNotFound):
        GenerationStore().mark_generating("missing")


def test_failed_mutator_leaves_record_unchanged():
    store = GenerationStore()
    record_id = store.create("p")

    def broken(record):
        record.status = GENERATING
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        store.update(record_id, broken)
    assert store.get(record_id).status == PENDING


def test_list_newest_first():
    store = GenerationStore()
    first = store.create("first")
    second = store.create("second")
    third = store.create("third")
    assert [r.id for r in store.list_all()] == [third, second, first]


def test_list_filters_by_status():
    store = GenerationStore()
    done = store.create("done")
    store.create("waiting")
    store.mark_generating(done)
    store.mark_completed(done, "key")
    assert [r.id for r in store.list_all(status=COMPLETED)] == [done]
    assert len(store.list_all(status=PENDING)) == 1
    assert store.list_all(status=FAILED) == []


def test_list_rejects_unknown_status():
    with pytest.raises(ValueError):
        GenerationStore().list_all(status="archived")


def test_persistence_round_trip(tmp_path):
    path = tmp_path / "records.json"
    store = GenerationStore(str(path))
    record_id = store.create("persist me")
    store.mark_generating(record_id)
    store.mark_failed(record_id, "boom")

    data = json.loads(path.read_text())
    assert data[0]["status"] == FAILED
    assert data[0]["createdAt"]

    reloaded = GenerationStore(str(path)).get(record_id)
    assert reloaded.status == FAILED
    assert reloaded.error == "boom"


def test_persistence_creates_directory(tmp_path):
    path = tmp_path / "nested" / "records.json"
    GenerationStore(str(path)).create("p")
    assert path.exists()


def test_concurrent_updates_are_not_lost():
    store = GenerationStore()
    ids = [store.create(f"prompt {i}") for i in range(20)]
    for record_id in ids:
        store.mark_generating(record_id)

    def finish(record_id):
        store.mark_progress(record_id, "validation", 90.0)
        store.mark_completed(record_id, f"key-{record_id}", 90.0)

    threads = [threading.Thread(target=finish, args=(i,)) for i in ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    records = store.list_all(status=COMPLETED)
    assert len(records) == 20
    assert all(r.output_ref == f"key-{r.id}" for r in records)


def test_reload_fails_unfinished_records(tmp_path):
    path = str(tmp_path / "records.json")
    store = GenerationStore(path)
    running = store.create("running")
    store.mark_generating(running)
    waiting = store.create("waiting")
    done = store.create("done")
    store.mark_generating(done)
    store.mark_completed(done, "key", 90.0)

    reloaded = GenerationStore(path)
    for record_id in (running, waiting):
        record = reloaded.get(record_id)
        assert record.status == FAILED
        assert record.error == "Interrupted before completion"
        assert record.completed_at is not None
    assert reloaded.get(done).status == COMPLETED
    assert reloaded.get(done).error is None

    # The repair is persisted
    assert GenerationStore(path).get(running).completed_at == reloaded.get(running).completed_at
