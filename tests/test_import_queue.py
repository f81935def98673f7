import threading

from app.models.import_run import ImportRunStatus
from app.services.importing.errors import ResolutionError
from app.services.importing.pipeline import ImportOutcome
from app.services.importing.queue import ImportQueue


def enqueue(store, provider="siyavula"):
    return store.create_run(provider, {"provider": provider, "dataset": {"provider": provider, "modules": []}})


def test_concurrent_claims_only_one_wins(store):
    run = enqueue(store)
    barrier = threading.Barrier(2)
    results = []

    def attempt():
        barrier.wait()
        results.append(store.claim_run(run.id, []))

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert results.count(None) == 1
    assert store.get_run(run.id).status == ImportRunStatus.RUNNING


def test_claim_returns_none_when_another_worker_won(store):
    run = enqueue(store)
    queue = ImportQueue(store, poll_interval=0.01)
    # simulate a competing worker claiming between our select and update
    original_find = store.find_oldest_pending

    def find_then_lose():
        pending = original_find()
        store.claim_run(pending.id, [])
        return pending

    store.find_oldest_pending = find_then_lose
    assert queue.claim_next() is None
    assert store.get_run(run.id).status == ImportRunStatus.RUNNING


def test_tick_is_single_flight(store):
    enqueue(store)
    enqueue(store)
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_pipeline(store_, provider, run):
        calls.append(run.id)
        started.set()
        release.wait(5)
        return ImportOutcome(totals={"assets": 0})

    queue = ImportQueue(store, poll_interval=0.01, pipeline=slow_pipeline)
    first = {}
    worker = threading.Thread(target=lambda: first.setdefault("id", queue.tick()))
    worker.start()
    assert started.wait(5)

    # a second tick while the first run is executing claims nothing
    assert queue.tick() is None
    assert calls == [1]
    assert store.get_run(2).status == ImportRunStatus.PENDING

    release.set()
    worker.join(5)
    assert first["id"] == 1
    assert queue.tick() == 2
    assert calls == [1, 2]


def test_unknown_provider_errors_without_pipeline(store):
    run = enqueue(store, provider="khan")
    calls = []

    def pipeline(*args):
        calls.append(args)
        return ImportOutcome()

    queue = ImportQueue(store, poll_interval=0.01, pipeline=pipeline)
    assert queue.tick() == run.id

    stored = store.get_run(run.id)
    assert calls == []
    assert stored.status == ImportRunStatus.ERROR
    assert stored.finished_at is not None
    assert stored.errors == ['Unknown import provider "khan".']
    assert stored.logs[-1].level == "error"


def test_success_is_finalized_with_totals_and_warnings(store):
    run = enqueue(store)
    seen = []

    def pipeline(store_, provider, claimed):
        assert claimed.status == ImportRunStatus.RUNNING
        return ImportOutcome(totals={"assets": 3}, warnings=["Potential dead link (404) for https://x"])

    queue = ImportQueue(store, poll_interval=0.01, pipeline=pipeline, on_log=lambda rid, e: seen.append(e.message))
    queue.tick()

    stored = store.get_run(run.id)
    assert stored.status == ImportRunStatus.SUCCESS
    assert stored.totals == {"assets": 3}
    assert stored.errors == []
    assert stored.started_at and stored.finished_at
    assert [e.level for e in stored.logs] == ["info", "info", "warn", "info"]
    assert [e.message for e in stored.logs] == seen
    assert stored.logs[0].message == "Run claimed by import worker"
    assert stored.logs[-1].message == "Import completed"


def test_outcome_errors_mark_run_as_error(store):
    run = enqueue(store)
    queue = ImportQueue(
        store,
        poll_interval=0.01,
        pipeline=lambda *a: ImportOutcome(totals={"assetsDetected": 9}, errors=["assets count 9 exceeds the limit 5"]),
    )
    queue.tick()
    stored = store.get_run(run.id)
    assert stored.status == ImportRunStatus.ERROR
    assert stored.errors == ["assets count 9 exceeds the limit 5"]
    assert stored.totals == {"assetsDetected": 9}


def test_pipeline_exception_becomes_terminal_error(store):
    run = enqueue(store)

    def failing(*args):
        raise ResolutionError('Lesson "x" not found in module "algebra-1".')

    queue = ImportQueue(store, poll_interval=0.01, pipeline=failing)
    assert queue.tick() == run.id

    stored = store.get_run(run.id)
    assert stored.status == ImportRunStatus.ERROR
    assert stored.errors == ['Lesson "x" not found in module "algebra-1".']
    assert stored.logs[-1].level == "error"
    assert "Import failed" in stored.logs[-1].message


def test_runs_are_claimed_oldest_first(store):
    first = enqueue(store)
    second = enqueue(store)
    order = []
    queue = ImportQueue(store, poll_interval=0.01, pipeline=lambda s, p, r: order.append(r.id) or ImportOutcome())
    queue.tick()
    queue.tick()
    assert order == [first.id, second.id]
    assert queue.tick() is None


def test_tick_survives_store_failures(store):
    enqueue(store)

    def broken():
        raise RuntimeError("database unavailable")

    store.find_oldest_pending = broken
    queue = ImportQueue(store, poll_interval=0.01)
    assert queue.tick() is None


def test_start_and_stop_background_loop(store):
    run = enqueue(store)
    done = threading.Event()

    def pipeline(*args):
        done.set()
        return ImportOutcome()

    queue = ImportQueue(store, poll_interval=0.01, pipeline=pipeline)
    queue.start()
    try:
        assert done.wait(5)
    finally:
        queue.stop()
        queue.join(5)
    assert not queue.running
    assert store.get_run(run.id).status == ImportRunStatus.SUCCESS
