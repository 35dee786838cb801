import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from app.core.logger import get_logger
from app.llm.entity.chat import ChatRequest, ChatResult
from app.llm.entity.provider_config import ProviderCandidate
from app.llm.service.errors import BadRequest, ConfigurationError
from app.llm.service.router_service import FallbackRouter

logger = get_logger(__name__)


def mask_key(value: Optional[str]) -> Optional[str]:
    """First five characters followed by an ellipsis; never the full key."""
    if not value:
        return None
    return f"{value[:5]}..."


class LLMService:
    """Validates proxy requests and hands them to the fallback router."""

    def __init__(
        self,
        router: FallbackRouter,
        diag_candidates: Optional[List[ProviderCandidate]] = None,
        credentials: Optional[Dict[str, Optional[str]]] = None,
    ):
        self.router = router
        self.diag_candidates = diag_candidates
        # provider id -> raw credential, only used to report masked prefixes
        self.credentials = credentials or {}

    def parse_request(self, raw_body: bytes | str | Dict[str, Any]) -> ChatRequest:
        if isinstance(raw_body, (bytes, str)):
            try:
                payload = json.loads(raw_body or b"null")
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise BadRequest(details=f"Request body is not valid JSON: {e}")
        else:
            payload = raw_body
        if not isinstance(payload, dict):
            raise BadRequest(details="Request body must be a JSON object with 'contents'")
        try:
            request = ChatRequest.model_validate(payload)
        except ValidationError as e:
            raise BadRequest(details=_validation_summary(e))
        if not request.contents:
            raise BadRequest(details="'contents' must contain at least one message")
        return request

    async def chat(self, raw_body: bytes | str | Dict[str, Any]) -> ChatResult:
        # Credential check first: nothing is parsed or sent without one.
        if not self.router.has_credentials():
            logger.error("No provider credential configured for any fallback candidate")
            raise ConfigurationError()
        request = self.parse_request(raw_body)
        logger.debug(f"chat start | turns={len(request.contents)} system_chars={len(request.system_instruction or '')}")
        return await self.router.generate(request)

    async def diagnostics(self) -> Dict[str, Any]:
        configured = self.router.has_credentials()
        providers = [
            {
                "provider": provider_id,
                "configured": provider.is_enabled(),
                "keyPrefix": mask_key(self.credentials.get(provider_id)),
            }
            for provider_id, provider in self.router.providers.items()
        ]
        report: Dict[str, Any] = {
            "diagnostic": "Model Probe Results",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "credentialConfigured": configured,
            "providers": providers,
            "results": [],
        }
        if configured:
            report["results"] = await self.router.probe(self.diag_candidates)
        return report


def _validation_summary(error: ValidationError) -> str:
    issues = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        issues.append(f"{location}: {item.get('msg')}")
    return "Invalid chat request: " + "; ".join(issues)
