"""
Provider Manager — the request orchestrator.

Runs one analysis request against an ordered list of model identifiers:

  1. no credential        → ConfigurationError (no network call)
  2. no query and no image → EmptyRequestError (no network call)
  3. try each model once, in order; the first success is returned
  4. all failed           → the last error is classified into
                            QuotaExceededError or RequestFailedError

There is no backoff, no delay and no parallelism: a later model is only worth
calling once the earlier one has failed.

The order lives in AssistantConfig.model_candidates (env: MODEL_CANDIDATES),
so candidates can be reordered or added without touching this module.
"""
from __future__ import annotations

import ast
import json
import logging
import re
from typing import Callable, Optional

import config
from config import AssistantConfig
from errors import (
    ConfigurationError, EmptyRequestError, QuotaExceededError, RequestFailedError,
)
from models import AnalysisRequest, AnalysisResult
from providers.base import GenerationProvider

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "API Key 尚未設定。請確認環境變數 GEMINI_API_KEY (或 API_KEY) 是否正確。"
EMPTY_REQUEST_MESSAGE = "請輸入產品名稱或上傳一張產品照片。"
QUOTA_MESSAGE = (
    "API 配額已額滿 (Rate Limit Exceeded)。"
    "請稍後再試，或檢查您的 Google AI Studio 方案是否已達上限。"
)
DEFAULT_ERROR_MESSAGE = "無法獲取產品數據"

_EMBEDDED_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def _default_provider_factory(api_key: str) -> GenerationProvider:
    from providers.gemini_provider import GeminiProvider
    return GeminiProvider(api_key)


# ── Error classification ──────────────────────────────────────────────────────

def _decode_object(text: str) -> Optional[dict]:
    """JSON first; the SDK stringifies response bodies as Python dict reprs."""
    for decode in (json.loads, ast.literal_eval):
        try:
            obj = decode(text)
        except (ValueError, SyntaxError, TypeError, RecursionError):
            continue
        if isinstance(obj, dict):
            return obj
    return None


def _error_message_from(body) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return None


def resolve_error_message(error: Optional[BaseException]) -> str:
    """
    Best human-readable message for a failed generation call.
    Prefers error.message from a structured or embedded JSON body over the raw text.
    """
    if error is None:
        return DEFAULT_ERROR_MESSAGE

    structured = _error_message_from(getattr(error, "details", None))
    if structured:
        return structured

    message = str(error) or DEFAULT_ERROR_MESSAGE
    match = _EMBEDDED_OBJECT_RE.search(message)
    if match:
        embedded = _error_message_from(_decode_object(match.group(0)))
        if embedded:
            return embedded
    return message


def is_quota_error(message: str, error: Optional[BaseException] = None) -> bool:
    if getattr(error, "code", None) == 429:
        return True
    return "quota" in message.lower() or "429" in message


def classify_failure(error: Optional[BaseException]) -> Exception:
    """Turn the last per-model failure into the exception shown to the user."""
    message = resolve_error_message(error)
    if is_quota_error(message, error):
        return QuotaExceededError(QUOTA_MESSAGE)
    return RequestFailedError(f"搜尋失敗: {message}", detail=message)


# ── Orchestrator ──────────────────────────────────────────────────────────────

class ShoppingAssistant:
    """Sends one request per model candidate until one succeeds."""

    def __init__(
        self,
        settings: AssistantConfig,
        provider_factory: Callable[[str], GenerationProvider] = _default_provider_factory,
    ):
        self.settings = settings
        self._provider_factory = provider_factory
        self._provider: Optional[GenerationProvider] = None

    def _get_provider(self) -> GenerationProvider:
        if self._provider is None:
            self._provider = self._provider_factory(self.settings.api_key)
        return self._provider

    async def analyse(self, request: AnalysisRequest) -> AnalysisResult:
        if not self.settings.api_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE)
        if request.is_empty:
            raise EmptyRequestError(EMPTY_REQUEST_MESSAGE)

        provider = self._get_provider()
        last_error: Optional[Exception] = None

        for model_id in self.settings.model_candidates:
            logger.info("Trying model %s (image=%s)", provider.full_name(model_id), request.has_image)
            try:
                result = await provider.generate(model_id, request)
            except Exception as exc:
                logger.warning("[%s] Failed: %s", provider.full_name(model_id), exc)
                last_error = exc
                continue
            logger.info(
                "[%s] OK — %d sources, latency=%dms",
                provider.full_name(model_id), len(result.sources), result.latency_ms,
            )
            return result

        logger.error("All %d model candidates failed", len(self.settings.model_candidates))
        raise classify_failure(last_error)

    async def search(self, query: str = "", image: Optional[bytes] = None) -> AnalysisResult:
        return await self.analyse(AnalysisRequest(query=query or "", image=image))


# Module-level cache — built from the environment on first use
_assistant: Optional[ShoppingAssistant] = None


def get_assistant() -> ShoppingAssistant:
    global _assistant
    if _assistant is None:
        settings = config.load_assistant_config()
        logger.info("Model candidates: %s", ", ".join(settings.model_candidates))
        _assistant = ShoppingAssistant(settings)
    return _assistant


def reset_assistant() -> None:
    """Drop the cached instance so the next call re-reads the environment."""
    global _assistant
    _assistant = None
