import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from app.knowledge.entity.knowledge import KnowledgeItem, KnowledgeType, initial_knowledge, single_line
from app.knowledge.service.codec import export_markdown, import_markdown, merge_items
from app.store.local_store import KNOWLEDGE_KEY, LocalStateStore
from app.sync.service.sync_service import SyncService


class KnowledgeNotFoundError(LookupError):
    pass


class KnowledgeService:
    """Knowledge base kept in the local state store and mirrored to sync."""

    def __init__(self, store: LocalStateStore, sync: SyncService, logger: logging.Logger):
        self.store = store
        self.sync = sync
        self.logger = logger

    async def list_items(self) -> List[KnowledgeItem]:
        raw = await self.store.get_json(KNOWLEDGE_KEY)
        if raw is None:
            return initial_knowledge()
        return [KnowledgeItem.model_validate(item) for item in raw]

    async def replace_all(self, items: List[KnowledgeItem], push: bool = True) -> None:
        await self.store.set_json(KNOWLEDGE_KEY, [item.model_dump(mode="json", by_alias=True) for item in items])
        if push:
            self.sync.schedule_knowledge_push(items)

    async def get_item(self, item_id: str) -> KnowledgeItem:
        for item in await self.list_items():
            if item.id == item_id:
                return item
        raise KnowledgeNotFoundError(item_id)

    async def add_item(self, title: str, content: str, item_type: KnowledgeType = KnowledgeType.NOTE) -> KnowledgeItem:
        if not title.strip() or not content.strip():
            raise ValueError("Title and content are required")
        item = KnowledgeItem(title=title, content=content, type=item_type)
        items = await self.list_items()
        await self.replace_all([item] + items)
        self.logger.info(f"Added knowledge item {item.id} ({item.type.value})")
        return item

    async def update_item(
        self,
        item_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
        item_type: Optional[KnowledgeType] = None,
    ) -> KnowledgeItem:
        items = await self.list_items()
        for index, item in enumerate(items):
            if item.id != item_id:
                continue
            changes = {}
            if title is not None:
                changes["title"] = single_line(title)
            if content is not None:
                changes["content"] = content
            if item_type is not None:
                changes["type"] = item_type
            updated = item.model_copy(update=changes)
            items[index] = updated
            await self.replace_all(items)
            return updated
        raise KnowledgeNotFoundError(item_id)

    async def append_insight(self, item_id: str, insight: str, now: Optional[datetime] = None) -> KnowledgeItem:
        """Append a dated insight section to an item's content."""
        if not insight.strip():
            raise ValueError("Insight text is required")
        item = await self.get_item(item_id)
        stamp = (now or datetime.now(timezone.utc)).strftime("%d %B, %H:%M")
        return await self.update_item(item_id, content=f"{item.content}\n\n### Insight ({stamp})\n{insight}")

    async def delete_item(self, item_id: str) -> None:
        items = await self.list_items()
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            raise KnowledgeNotFoundError(item_id)
        await self.replace_all(remaining, push=False)
        self.sync.schedule_knowledge_delete(item_id)

    async def export(self) -> str:
        return export_markdown(await self.list_items())

    async def import_document(self, text: str) -> Tuple[int, int]:
        """Merge an exported document into the knowledge base; returns ``(added, updated)``."""
        imported = import_markdown(text)
        if not imported:
            return 0, 0
        merged, added, updated = merge_items(await self.list_items(), imported)
        await self.replace_all(merged)
        self.logger.info(f"Imported knowledge: added={added} updated={updated}")
        return added, updated
