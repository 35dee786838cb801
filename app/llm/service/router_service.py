# app/llm/service/router_service.py
import asyncio
import time
from typing import Any, Dict, List, Mapping, Optional

from app.core.logger import get_logger
from app.llm.entity.chat import (
    AttemptRecord,
    ChatFailure,
    ChatRequest,
    ChatResult,
    Content,
    ErrorKind,
    Part,
)
from app.llm.entity.provider_config import ProviderCandidate
from app.llm.service.errors import (
    AllProvidersFailed,
    AuthError,
    ProviderError,
    TransientError,
)
from app.llm.service.provider.base_provider import BaseProvider

logger = get_logger("FallbackRouter")

PROBE_PROMPT = "echo hi"


class FallbackRouter:
    """
    Central routing layer for LLM requests.

    Tries the configured (provider, model) candidates strictly in order and
    returns the first non-empty reply. Every failed candidate is classified
    and recorded; when all fail, ``AllProvidersFailed`` carries the ordered
    attempt list. Holds no per-request state.
    """

    def __init__(
        self,
        providers: Mapping[str, BaseProvider],
        candidates: List[ProviderCandidate],
        abort_on_rate_limit: bool = False,
        candidate_timeout_ms: int = 30000,
    ):
        self.providers = dict(providers)
        self.candidates = sorted(candidates, key=lambda c: c.priority)
        self.abort_on_rate_limit = abort_on_rate_limit
        self.candidate_timeout_ms = candidate_timeout_ms
        # Diagnostics only; never used to reorder candidates.
        self.provider_latency: Dict[str, float] = {}

    async def _with_timeout(self, coro, timeout_ms: int, candidate: ProviderCandidate):
        """Helper to apply timeout."""
        try:
            return await asyncio.wait_for(coro, timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise TransientError(
                f"Timed out after {timeout_ms} ms",
                provider=candidate.provider_id,
                model=candidate.model_id,
            )

    def has_credentials(self) -> bool:
        """True when at least one candidate's provider is usable."""
        return any(
            self.providers[c.provider_id].is_enabled()
            for c in self.candidates
            if c.provider_id in self.providers
        )

    async def _attempt(self, request: ChatRequest, candidate: ProviderCandidate) -> str:
        provider = self.providers.get(candidate.provider_id)
        if provider is None:
            raise AuthError(f"Unknown provider '{candidate.provider_id}'", provider=candidate.provider_id, model=candidate.model_id)
        if not provider.is_enabled():
            raise AuthError(f"No credential configured for {candidate.provider_id}", provider=candidate.provider_id, model=candidate.model_id)

        start = time.perf_counter()
        text = await self._with_timeout(provider.generate(request, candidate.model_id), self.candidate_timeout_ms, candidate)
        self.provider_latency[candidate.candidate_id] = time.perf_counter() - start
        return text

    async def generate(self, request: ChatRequest) -> ChatResult:
        attempts: List[AttemptRecord] = []
        aborted = False

        for candidate in self.candidates:
            try:
                text = await self._attempt(request, candidate)
            except ProviderError as e:
                kind, message = e.kind, e.message
            except Exception as e:
                logger.error(f"Unexpected error from {candidate.candidate_id}: {e}", exc_info=True)
                kind, message = ErrorKind.TRANSIENT, f"{e.__class__.__name__}: {e}"
            else:
                if text and text.strip():
                    logger.info(f"Served by {candidate.candidate_id} after {len(attempts)} failed attempt(s)")
                    return ChatResult(text=text, used_provider=candidate.provider_id, used_model=candidate.model_id)
                kind, message = ErrorKind.EMPTY_RESPONSE, f"{candidate.model_id} returned no text"

            logger.warning(f"Candidate {candidate.candidate_id} failed: {kind.value}: {message}")
            attempts.append(AttemptRecord(
                candidate=candidate.candidate_id,
                provider=candidate.provider_id,
                model=candidate.model_id,
                error_kind=kind,
                message=message,
            ))
            if kind == ErrorKind.RATE_LIMITED and self.abort_on_rate_limit:
                aborted = True
                break

        if attempts:
            last = attempts[-1]
            failure = ChatFailure(error_kind=last.error_kind, message=last.message, attempted_candidates=attempts, aborted=aborted)
        else:
            failure = ChatFailure(error_kind=ErrorKind.AUTH, message="No fallback candidates configured")
        logger.error(f"All providers failed: {failure.summary() or failure.message}")
        raise AllProvidersFailed(failure)

    async def probe(self, candidates: Optional[List[ProviderCandidate]] = None) -> List[Dict[str, Any]]:
        """Send a tiny prompt to each candidate and report which ones answer."""
        request = ChatRequest(contents=[Content(role="user", parts=[Part(text=PROBE_PROMPT)])])
        results: List[Dict[str, Any]] = []
        for candidate in candidates or self.candidates:
            entry: Dict[str, Any] = {"provider": candidate.provider_id, "model": candidate.model_id}
            try:
                text = await self._attempt(request, candidate)
                entry.update(status="SUCCESS", response=text[:20])
            except ProviderError as e:
                entry.update(status="FAILED", errorKind=e.kind.value, error=e.message)
            except Exception as e:
                logger.error(f"Probe of {candidate.candidate_id} raised: {e}", exc_info=True)
                entry.update(status="FAILED", errorKind=ErrorKind.TRANSIENT.value, error=str(e))
            results.append(entry)
        return results

    def get_latency_report(self) -> Dict[str, float]:
        return self.provider_latency

    async def aclose(self) -> None:
        for provider in self.providers.values():
            await provider.aclose()

    def __repr__(self):
        return f"<FallbackRouter candidates={[c.candidate_id for c in self.candidates]}>"
