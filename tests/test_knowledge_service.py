from datetime import datetime, timezone

import pytest

from app.knowledge.entity.knowledge import KnowledgeItem, KnowledgeType
from app.knowledge.service.codec import export_markdown
from app.knowledge.service.knowledge_service import KnowledgeNotFoundError, KnowledgeService
from app.store.local_store import KNOWLEDGE_KEY, InMemoryStateStore
from app.sync.service.sync_service import SyncService
from conftest import FakeRemote


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def service(store, logger):
    return KnowledgeService(store, SyncService(None, logger), logger)


@pytest.mark.asyncio
async def test_fresh_store_serves_the_sample_items(service):
    items = await service.list_items()
    assert [i.id for i in items] == ["1", "2"]


@pytest.mark.asyncio
async def test_an_emptied_knowledge_base_stays_empty(service):
    await service.delete_item("1")
    await service.delete_item("2")

    assert await service.list_items() == []


@pytest.mark.asyncio
async def test_add_prepends_and_persists(service, store):
    added = await service.add_item("Pricing", "Charge for value.", KnowledgeType.STRATEGY)

    items = await service.list_items()
    assert items[0].id == added.id
    assert KNOWLEDGE_KEY in store.data
    assert '"createdAt"' in store.data[KNOWLEDGE_KEY]


@pytest.mark.asyncio
async def test_add_requires_title_and_content(service):
    with pytest.raises(ValueError):
        await service.add_item("  ", "content")


@pytest.mark.asyncio
async def test_update_changes_only_given_fields(service):
    updated = await service.update_item("1", title="Lean Startup (notes)")

    assert updated.title == "Lean Startup (notes)"
    assert updated.type == KnowledgeType.BOOK
    assert (await service.get_item("1")).title == "Lean Startup (notes)"


@pytest.mark.asyncio
async def test_append_insight_adds_dated_section(service):
    when = datetime(2024, 3, 5, 14, 7, tzinfo=timezone.utc)

    updated = await service.append_insight("2", "Interview for grit.", now=when)

    assert updated.content.endswith("\n\n### Insight (05 March, 14:07)\nInterview for grit.")


@pytest.mark.asyncio
async def test_missing_items_raise(service):
    with pytest.raises(KnowledgeNotFoundError):
        await service.update_item("nope", title="x")
    with pytest.raises(KnowledgeNotFoundError):
        await service.delete_item("nope")


@pytest.mark.asyncio
async def test_import_merges_exported_document(service):
    items = await service.list_items()
    renamed = items[0].model_copy(update={"title": "Renamed"})
    extra = items[1].model_copy(update={"id": "new-1"})
    document = export_markdown([renamed, extra])

    added, updated = await service.import_document(document)

    assert (added, updated) == (1, 1)
    assert [(i.id, i.title) for i in await service.list_items()] == [
        ("new-1", "Hiring strategy"),
        ("1", "Renamed"),
        ("2", "Hiring strategy"),
    ]


@pytest.mark.asyncio
async def test_import_of_unrelated_text_changes_nothing(service, store):
    assert await service.import_document("just some notes") == (0, 0)
    assert KNOWLEDGE_KEY not in store.data


@pytest.mark.asyncio
async def test_changes_are_pushed_when_authorized(store, logger):
    remote = FakeRemote()
    sync = SyncService(remote, logger)
    sync.authorize("acme")
    service = KnowledgeService(store, sync, logger)

    await service.add_item("Pricing", "Charge for value.")
    await sync.wait_for_pending()

    assert [i.title for i in remote.knowledge["acme"]][0] == "Pricing"
    assert len(remote.knowledge["acme"]) == 3


@pytest.mark.asyncio
async def test_delete_removes_only_that_item_remotely(store, logger):
    remote = FakeRemote()
    remote.knowledge["acme"] = [KnowledgeItem(id="laptop", title="Other device", content="Keep me")]
    sync = SyncService(remote, logger)
    sync.authorize("acme")
    service = KnowledgeService(store, sync, logger)

    await service.add_item("Pricing", "Charge for value.")
    await sync.wait_for_pending()
    await service.delete_item("1")
    await sync.wait_for_pending()

    remote_ids = [i.id for i in remote.knowledge["acme"]]
    assert "laptop" in remote_ids
    assert "1" not in remote_ids
    assert "2" in remote_ids


@pytest.mark.asyncio
async def test_titles_are_stored_on_a_single_line(service):
    added = await service.add_item("Two\nlines", "Body")
    updated = await service.update_item(added.id, title="Renamed\r\nID: other")

    assert added.title == "Two lines"
    assert updated.title == "Renamed ID: other"
    assert [i.id for i in await service.list_items()][0] == added.id
