"""
Entity index lifecycle tests - single-flight build, upserts, failures and disposal.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import KeywordEmbedding, run
from icp_platform.core.schema import PARTNERS, SOLUTIONS
from icp_platform.vector.entity_index import (
    BUILDING, READY, UNINITIALIZED, EntityIndex, partner_text, solution_text,
)


async def seed_solutions(store, count=3):
    created = []
    for i in range(count):
        created.append(await store.create(SOLUTIONS, {
            "name": f"Water project {i}", "domain": "Water",
            "summary": "water filter", "benefit": "clean water", "status": "MATURE",
        }))
    return created


def test_canonical_text_formats():
    solution = {"id": "s1", "name": "Aqua", "domain": "Water", "summary": "Filters", "benefit": "Health"}
    partner = {"id": "p1", "organizationName": "Rain Co", "entityType": "NGO", "description": "Harvesting"}

    assert solution_text(solution) == \
        "Solution: Aqua (ID: s1). Domain: Water. Summary: Filters. Benefit: Health."
    assert partner_text(partner) == \
        "Partner: Rain Co (ID: p1). Type: NGO. Description: Harvesting."


def test_concurrent_ensure_built_runs_one_build(store):
    async def scenario():
        await seed_solutions(store, 3)
        embedder = KeywordEmbedding(delay=0.01)
        index = EntityIndex(SOLUTIONS, store, embedder)
        list_spy = AsyncMock(wraps=store.list)
        index.store = type("SpyStore", (), {"list": list_spy})()

        await asyncio.gather(*(index.ensure_built() for _ in range(10)))

        assert list_spy.await_count == 1
        assert embedder.calls == 3
        assert len(index) == 3
        assert index.state == READY

        # Ready: further calls are no-ops
        await index.ensure_built()
        assert embedder.calls == 3

    run(scenario())


def test_build_skips_items_whose_embedding_fails(store):
    async def scenario():
        docs = await seed_solutions(store, 3)
        embedder = KeywordEmbedding(fail_on=f"(ID: {docs[1]['id']})")
        index = EntityIndex(SOLUTIONS, store, embedder)

        await index.ensure_built()

        assert index.state == READY
        assert len(index) == 2
        assert index.get(docs[1]["id"]) is None
        assert index.stats()["last_build"]["failed"] == 1

    run(scenario())


def test_store_failure_resets_to_uninitialized(store):
    async def scenario():
        index = EntityIndex(SOLUTIONS, store, KeywordEmbedding())
        index.store = type("BrokenStore", (), {"list": AsyncMock(side_effect=RuntimeError("db down"))})()

        with pytest.raises(RuntimeError):
            await index.ensure_built()
        assert index.state == UNINITIALIZED

        index.store = store
        await index.ensure_built()
        assert index.state == READY

    run(scenario())


def test_upsert_is_skipped_before_first_build(store):
    async def scenario():
        embedder = KeywordEmbedding()
        index = EntityIndex(SOLUTIONS, store, embedder)

        written = await index.upsert({"id": "s1", "name": "Water"})

        assert written is False
        assert embedder.calls == 0
        assert len(index) == 0

    run(scenario())


def test_upsert_replaces_entry_when_ready(store):
    async def scenario():
        docs = await seed_solutions(store, 1)
        index = EntityIndex(SOLUTIONS, store, KeywordEmbedding())
        await index.ensure_built()

        updated = {**docs[0], "name": "Solar upgrade", "summary": "solar energy"}
        assert await index.upsert(updated) is True

        assert len(index) == 1
        assert index.get(docs[0]["id"]).metadata["name"] == "Solar upgrade"

    run(scenario())


def test_upsert_during_build_wins_over_snapshot(store):
    async def scenario():
        docs = await seed_solutions(store, 3)
        embedder = KeywordEmbedding(delay=0.01)
        index = EntityIndex(SOLUTIONS, store, embedder)

        build = asyncio.ensure_future(index.ensure_built())
        await asyncio.sleep(0)
        assert index.state == BUILDING

        fresh = {**docs[2], "name": "Renamed while building"}
        await index.upsert(fresh)
        await build

        assert len(index) == 3
        assert index.get(docs[2]["id"]).metadata["name"] == "Renamed while building"

    run(scenario())


def test_remove_during_build_is_not_resurrected(store):
    async def scenario():
        docs = await seed_solutions(store, 3)
        index = EntityIndex(SOLUTIONS, store, KeywordEmbedding(delay=0.01))

        build = asyncio.ensure_future(index.ensure_built())
        await asyncio.sleep(0)
        index.remove(docs[2]["id"])
        await build

        assert index.get(docs[2]["id"]) is None
        assert len(index) == 2

    run(scenario())


def test_dispose_and_rebuild(store):
    async def scenario():
        await seed_solutions(store, 2)
        embedder = KeywordEmbedding()
        index = EntityIndex(SOLUTIONS, store, embedder)
        await index.ensure_built()

        index.dispose()
        assert index.state == UNINITIALIZED
        assert len(index) == 0

        await seed_solutions(store, 1)
        await index.rebuild()
        assert index.state == READY
        assert len(index) == 3

    run(scenario())


def test_dispose_cancels_in_flight_build(store):
    async def scenario():
        await seed_solutions(store, 3)
        index = EntityIndex(SOLUTIONS, store, KeywordEmbedding(delay=0.05))

        build = asyncio.ensure_future(index.ensure_built())
        await asyncio.sleep(0.01)
        index.dispose()

        with pytest.raises(asyncio.CancelledError):
            await build
        assert index.state == UNINITIALIZED
        assert len(index) == 0

    run(scenario())


def test_search_applies_threshold_and_filters(store):
    async def scenario():
        await store.create(SOLUTIONS, {"name": "Water filter", "domain": "Water", "summary": "water",
                                       "benefit": "water", "status": "MATURE"})
        await store.create(SOLUTIONS, {"name": "Solar lamp", "domain": "Energy", "summary": "solar energy",
                                       "benefit": "energy", "status": "MATURE"})
        embedder = KeywordEmbedding()
        index = EntityIndex(SOLUTIONS, store, embedder, min_similarity=0.4)
        await index.ensure_built()

        query = await embedder.embed_text("water")
        hits = index.search(query, 10)
        assert [h.metadata["name"] for h in hits] == ["Water filter"]

        assert index.search(query, 10, {"status": "PROPOSED"}) == []
        assert [h.metadata["name"] for h in index.search_fuzzy("LAMP", 10)] == ["Solar lamp"]

    run(scenario())


def test_unknown_collection_is_rejected(store):
    with pytest.raises(ValueError):
        EntityIndex("tickets", store, KeywordEmbedding())


def test_partner_index_uses_partner_fields(store):
    async def scenario():
        await store.create(PARTNERS, {"organizationName": "Rain Collective", "entityType": "NGO",
                                      "description": "rain water", "status": "APPROVED"})
        index = EntityIndex(PARTNERS, store, KeywordEmbedding())
        await index.ensure_built()

        assert [h.metadata["organizationName"] for h in index.search_fuzzy("ngo", 5)] == ["Rain Collective"]
        assert index.stats()["size"] == 1

    run(scenario())
