"""Comment counter consistency, including under concurrent writers."""
import asyncio
import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from composition_catalog_api.app.core.db import get_connection, transaction
from composition_catalog_api.app.core.errors import ConsistencyViolation, NotFound
from composition_catalog_api.app.schemas.composition import CompositionCreate
from composition_catalog_api.app.services.comment_service import CommentService
from composition_catalog_api.app.services.composition_service import CompositionService
from composition_catalog_api.app.services.counter_service import CounterCoordinator

from conftest import composition_payload, live_comment_rows, run_in_thread, stored_comment_count


def _new_composition_id() -> int:
    created = run_in_thread(
        CompositionService.add_composition, CompositionCreate(**composition_payload()), 1
    )
    return created.id


def test_increment_and_decrement_adjust_by_one():
    composition_id = _new_composition_id()
    with transaction() as cursor:
        assert CounterCoordinator.increment(cursor, composition_id) == 1
        assert CounterCoordinator.increment(cursor, composition_id) == 2
        assert CounterCoordinator.decrement(cursor, composition_id) == 1
    assert stored_comment_count(composition_id) == 1


def test_decrement_is_clamped_at_zero():
    composition_id = _new_composition_id()
    with transaction() as cursor:
        for _ in range(3):
            assert CounterCoordinator.decrement(cursor, composition_id) == 0
    assert stored_comment_count(composition_id) == 0


def test_missing_composition_is_a_consistency_violation():
    with pytest.raises(ConsistencyViolation):
        with transaction() as cursor:
            CounterCoordinator.increment(cursor, 999)
    with pytest.raises(ConsistencyViolation):
        with transaction() as cursor:
            CounterCoordinator.decrement(cursor, 999)


async def test_reconcile_repairs_a_drifted_counter(composition):
    await CommentService.add_comment("first", composition.id, 1)
    await CommentService.add_comment("second", composition.id, 2)
    conn = get_connection()
    try:
        conn.execute("UPDATE compositions SET comment_count = 40 WHERE id = ?", (composition.id,))
        conn.commit()
    finally:
        conn.close()

    assert await CounterCoordinator.reconcile(composition.id) == 2
    assert stored_comment_count(composition.id) == 2


async def test_reconcile_unknown_composition():
    with pytest.raises(NotFound):
        await CounterCoordinator.reconcile(12345)


def test_hundred_concurrent_additions_lose_no_update():
    composition_id = _new_composition_id()

    def add(i):
        return asyncio.run(CommentService.add_comment(f"comment {i}", composition_id, i))

    with ThreadPoolExecutor(max_workers=16) as pool:
        comments = list(pool.map(add, range(100)))

    assert len({c.id for c in comments}) == 100
    assert stored_comment_count(composition_id) == 100
    assert live_comment_rows(composition_id) == 100


def test_interleaved_additions_and_deletions_end_consistent():
    composition_id = _new_composition_id()
    seeded = [
        run_in_thread(CommentService.add_comment, f"seed {i}", composition_id, 1)
        for i in range(40)
    ]
    requester = {"user_id": 1, "role_id": 1}

    jobs = [("add", i) for i in range(30)] + [("delete", c.id) for c in seeded[:25]]
    random.Random(4).shuffle(jobs)

    def run(job):
        kind, value = job
        if kind == "add":
            return asyncio.run(CommentService.add_comment(f"late {value}", composition_id, 2))
        return asyncio.run(CommentService.delete_comment(value, requester))

    with ThreadPoolExecutor(max_workers=12) as pool:
        list(pool.map(run, jobs))

    assert live_comment_rows(composition_id) == 40 + 30 - 25
    assert stored_comment_count(composition_id) == 40 + 30 - 25


def test_concurrent_deletes_of_the_same_comment_decrement_once():
    composition_id = _new_composition_id()
    keep = run_in_thread(CommentService.add_comment, "keep", composition_id, 1)
    target = run_in_thread(CommentService.add_comment, "target", composition_id, 1)
    requester = {"user_id": 1, "role_id": 1}

    def delete(_):
        try:
            asyncio.run(CommentService.delete_comment(target.id, requester))
            return "deleted"
        except NotFound:
            return "missing"

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(delete, range(8)))

    assert outcomes.count("deleted") == 1
    assert stored_comment_count(composition_id) == 1
    assert run_in_thread(CommentService.get_comment, keep.id).id == keep.id
