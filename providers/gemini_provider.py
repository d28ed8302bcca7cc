"""
Google Gemini provider — uses the google-genai SDK with Google Search grounding.

The search tool is only exposed on the v1beta API, which is the SDK default,
so unlike a plain vision call the client is not pinned to v1.
"""
from __future__ import annotations

import logging
import time

from google import genai
from google.genai import types as genai_types

from models import AnalysisRequest, AnalysisResult, SourceCitation
from providers.base import (
    IMAGE_PROMPT, GenerationProvider, build_analysis_prompt, detect_mime_type,
)

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_TEXT = "無法產生詳細分析報告。"

_SEARCH_TOOL = genai_types.Tool(google_search=genai_types.GoogleSearch())


def build_parts(request: AnalysisRequest) -> list[genai_types.Part]:
    """Image part (if any) and its instruction first, then the analysis prompt."""
    parts: list[genai_types.Part] = []
    if request.has_image:
        parts.append(genai_types.Part.from_bytes(
            data=request.image,
            mime_type=detect_mime_type(request.image),
        ))
        parts.append(genai_types.Part.from_text(text=IMAGE_PROMPT))
    parts.append(genai_types.Part.from_text(
        text=build_analysis_prompt(request.query, request.has_image),
    ))
    return parts


def extract_sources(response) -> tuple[SourceCitation, ...]:
    """Grounding chunks of the first candidate; any missing level gives ()."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return ()
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []
    return tuple(SourceCitation.from_grounding_chunk(c) for c in chunks)


class GeminiProvider(GenerationProvider):

    def __init__(self, api_key: str):
        self.name    = "google"
        self._client = genai.Client(api_key=api_key)

    async def generate(self, model_id: str, request: AnalysisRequest) -> AnalysisResult:
        gen_config = genai_types.GenerateContentConfig(tools=[_SEARCH_TOOL])

        t0 = time.monotonic()

        response = await self._client.aio.models.generate_content(
            model=model_id,
            contents=[genai_types.Content(role="user", parts=build_parts(request))],
            config=gen_config,
        )

        latency_ms = int((time.monotonic() - t0) * 1000)

        return AnalysisResult(
            raw_text   = response.text or EMPTY_RESPONSE_TEXT,
            sources    = extract_sources(response),
            model_id   = model_id,
            latency_ms = latency_ms,
        )
