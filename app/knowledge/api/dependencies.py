from typing import Annotated

from fastapi import Depends, Request, HTTPException

from app.knowledge.api.handler import KnowledgeHandler


def get_knowledge_handler(request: Request) -> KnowledgeHandler:
    """Get knowledge handler from app state."""
    service = getattr(request.app.state, "knowledge_service", None)
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="Knowledge service not initialized. Check application logs."
        )

    if getattr(request.app.state, "knowledge_handler", None) is not None:
        return request.app.state.knowledge_handler

    knowledge_handler = KnowledgeHandler(service, request.app.state.logger)
    request.app.state.knowledge_handler = knowledge_handler
    return knowledge_handler


KnowledgeHandlerDep = Annotated[KnowledgeHandler, Depends(get_knowledge_handler)]
