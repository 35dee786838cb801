# app/llm/api/route.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from ..api.handler import LLMHandler
from app.core.dto import BaseResponse
from app.llm.service.errors import MethodNotAllowed


def get_llm_handler(request: Request) -> LLMHandler:
    """Dependency to get the chat proxy handler from app.state."""
    handler = getattr(request.app.state, "llm_handler", None)
    if handler is None:
        raise HTTPException(status_code=503, detail="Chat proxy not initialized. Check application logs.")
    return handler


# Chat proxy: POST to chat, GET ?diag=1 to probe models
chat_router = APIRouter(prefix="/chat", tags=["Chat proxy"])


@chat_router.post("", response_class=JSONResponse)
async def chat_api(request: Request, handler: LLMHandler = Depends(get_llm_handler)):
    """Forward a chat request through the provider fallback chain."""
    # Raw body: malformed JSON must surface as our 400, not a framework 422.
    raw_body = await request.body()
    return await handler.chat(raw_body)


@chat_router.get("", response_class=JSONResponse)
async def chat_diagnostics(
    diag: Optional[str] = Query(default=None),
    handler: LLMHandler = Depends(get_llm_handler),
):
    """Probe every diagnostic candidate with a tiny prompt."""
    if diag != "1":
        raise MethodNotAllowed()
    return await handler.diagnostics()


@chat_router.api_route("", methods=["PUT", "PATCH", "DELETE"], include_in_schema=False)
async def chat_method_not_allowed():
    raise MethodNotAllowed()


# Provider status
llm_router = APIRouter(prefix="/llm", tags=["LLM"])


@llm_router.get("/health", response_model=BaseResponse)
async def health(handler: LLMHandler = Depends(get_llm_handler)):
    """Health check for active providers."""
    health_data = await handler.health()
    return BaseResponse(
        status=True,
        message="Health check successful",
        data=health_data
    )


@llm_router.get("/providers", response_model=BaseResponse)
async def get_providers(handler: LLMHandler = Depends(get_llm_handler)):
    """Return list of active and available providers."""
    providers_data = await handler.providers()
    return BaseResponse(
        status=True,
        message="Providers fetched successfully",
        data=providers_data.model_dump()
    )
