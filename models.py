"""
models.py — canonical home of the request/result types shared by the
orchestrator, the section parser and both UIs.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Section(str, Enum):
    OVERVIEW = "overview"
    PRICE    = "price"
    PROS     = "pros"
    CONS     = "cons"
    VERDICT  = "verdict"


# Markdown headers the model is asked to use, in the order it must emit them.
SECTION_HEADERS: dict[Section, str] = {
    Section.OVERVIEW: "產品概覽",
    Section.PRICE:    "價格分析",
    Section.PROS:     "優點",
    Section.CONS:     "缺點",
    Section.VERDICT:  "專家點評",
}


@dataclass(frozen=True)
class AnalysisRequest:
    """A free-text query, an inline image, or both."""
    query: str = ""
    image: Optional[bytes] = None

    @property
    def has_image(self) -> bool:
        return bool(self.image)

    @property
    def is_empty(self) -> bool:
        return not self.query.strip() and not self.has_image


@dataclass(frozen=True)
class SourceCitation:
    """A web source the model grounded its answer on. Missing fields are empty."""
    uri: str = ""
    title: str = ""

    @classmethod
    def from_grounding_chunk(cls, chunk) -> "SourceCitation":
        web = getattr(chunk, "web", None)
        if web is None:
            return cls()
        return cls(
            uri=getattr(web, "uri", None) or "",
            title=getattr(web, "title", None) or "",
        )


@dataclass(frozen=True)
class AnalysisResult:
    """Raw markdown answer plus its citations, produced once per successful request."""
    raw_text: str
    sources: tuple[SourceCitation, ...] = ()
    model_id: str = ""          # which candidate answered
    latency_ms: int = 0
