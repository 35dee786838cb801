import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException

from app.knowledge.api.dto import InsightDTO, KnowledgeCreateDTO, KnowledgeUpdateDTO
from app.knowledge.entity.knowledge import KnowledgeItem
from app.knowledge.service.knowledge_service import KnowledgeNotFoundError, KnowledgeService


def _item(item: KnowledgeItem) -> dict[str, Any]:
    return item.model_dump(mode="json", by_alias=True)


class KnowledgeHandler:
    def __init__(self, knowledge_service: KnowledgeService, logger: logging.Logger):
        self.knowledge_service = knowledge_service
        self.logger = logger

    async def list_items(self) -> dict[str, Any]:
        items = await self.knowledge_service.list_items()
        return {
            "status": True,
            "message": "Knowledge base fetched successfully",
            "data": {"items": [_item(i) for i in items]},
        }

    async def add_item(self, body: KnowledgeCreateDTO) -> dict[str, Any]:
        try:
            item = await self.knowledge_service.add_item(body.title, body.content, body.type)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"status": True, "message": "Knowledge item added", "data": _item(item)}

    async def update_item(self, item_id: str, body: KnowledgeUpdateDTO) -> dict[str, Any]:
        try:
            item = await self.knowledge_service.update_item(
                item_id, title=body.title, content=body.content, item_type=body.type
            )
        except KnowledgeNotFoundError:
            raise HTTPException(status_code=404, detail=f"Knowledge item {item_id} not found")
        return {"status": True, "message": "Knowledge item updated", "data": _item(item)}

    async def append_insight(self, item_id: str, body: InsightDTO) -> dict[str, Any]:
        try:
            item = await self.knowledge_service.append_insight(item_id, body.text)
        except KnowledgeNotFoundError:
            raise HTTPException(status_code=404, detail=f"Knowledge item {item_id} not found")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"status": True, "message": "Insight appended", "data": _item(item)}

    async def delete_item(self, item_id: str) -> dict[str, Any]:
        try:
            await self.knowledge_service.delete_item(item_id)
        except KnowledgeNotFoundError:
            raise HTTPException(status_code=404, detail=f"Knowledge item {item_id} not found")
        return {"status": True, "message": "Knowledge item deleted", "data": {"id": item_id}}

    async def export(self) -> tuple[str, str]:
        """Markdown document plus the download file name."""
        document = await self.knowledge_service.export()
        filename = f"an-mind-knowledge-{datetime.now(timezone.utc).date().isoformat()}.md"
        return document, filename

    async def import_document(self, document: str) -> dict[str, Any]:
        added, updated = await self.knowledge_service.import_document(document)
        return {
            "status": True,
            "message": f"Import complete. Added: {added}, updated: {updated}",
            "data": {"added": added, "updated": updated},
        }
