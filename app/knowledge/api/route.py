from fastapi import APIRouter, Request, Response

from app.core.dto import BaseResponse
from app.knowledge.api.dependencies import KnowledgeHandlerDep
from app.knowledge.api.dto import InsightDTO, KnowledgeCreateDTO, KnowledgeUpdateDTO

knowledge_router = APIRouter(prefix="/knowledge", tags=["Knowledge"])


@knowledge_router.get("", response_model=BaseResponse)
async def list_items(handler: KnowledgeHandlerDep):
    return await handler.list_items()


@knowledge_router.post("", response_model=BaseResponse, status_code=201)
async def add_item(body: KnowledgeCreateDTO, handler: KnowledgeHandlerDep):
    return await handler.add_item(body)


@knowledge_router.get("/export")
async def export_knowledge(handler: KnowledgeHandlerDep):
    """Download the knowledge base as a Markdown document."""
    document, filename = await handler.export()
    return Response(
        content=document,
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@knowledge_router.post("/import", response_model=BaseResponse)
async def import_knowledge(request: Request, handler: KnowledgeHandlerDep):
    """Import a Markdown document produced by /knowledge/export (sent as the raw body)."""
    document = (await request.body()).decode("utf-8", errors="replace")
    return await handler.import_document(document)


@knowledge_router.patch("/{item_id}", response_model=BaseResponse)
async def update_item(item_id: str, body: KnowledgeUpdateDTO, handler: KnowledgeHandlerDep):
    return await handler.update_item(item_id, body)


@knowledge_router.post("/{item_id}/insights", response_model=BaseResponse)
async def append_insight(item_id: str, body: InsightDTO, handler: KnowledgeHandlerDep):
    return await handler.append_insight(item_id, body)


@knowledge_router.delete("/{item_id}", response_model=BaseResponse)
async def delete_item(item_id: str, handler: KnowledgeHandlerDep):
    return await handler.delete_item(item_id)
