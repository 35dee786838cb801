from typing import Any, Dict

from app.llm.api.dto import ChatProxyResponse, ProviderInfo, ProviderListResponse
from app.llm.service.llm_service import LLMService
from app.core.logger import get_logger

logger = get_logger("ChatProxyHandler")


class LLMHandler:
    """Handler for the chat proxy endpoints."""

    def __init__(self, llm_service: LLMService):
        self.llm_service = llm_service
        self.router = llm_service.router

    async def chat(self, raw_body: bytes) -> Dict[str, Any]:
        result = await self.llm_service.chat(raw_body)
        response = ChatProxyResponse(text=result.text, used_model=result.used_model, used_provider=result.used_provider)
        return response.model_dump(by_alias=True)

    async def diagnostics(self) -> Dict[str, Any]:
        report = await self.llm_service.diagnostics()
        ok = sum(1 for r in report["results"] if r.get("status") == "SUCCESS")
        logger.info(f"diagnostics | configured={report['credentialConfigured']} ok={ok}/{len(report['results'])}")
        return report

    async def health(self) -> dict:
        """Health check for active providers."""
        active = [p for p in self.router.providers.values() if p.is_enabled()]
        return {
            "status": "ok",
            "active_providers": len(active),
            "total_providers": len(self.router.providers),
        }

    async def providers(self) -> ProviderListResponse:
        """Return list of active and available providers."""
        provider_list = []
        for name, provider in self.router.providers.items():
            latencies = [v for k, v in self.router.get_latency_report().items() if k.split(":", 1)[0] == name]
            latency = latencies[-1] if latencies else None
            provider_list.append(ProviderInfo(
                name=name,
                latency_ms=int(latency * 1000) if latency else None,
                status="active" if provider.is_enabled() else "disabled",
            ))
        return ProviderListResponse(providers=provider_list)
