"""
report.py — turns the model's markdown answer into display fields.

The model is asked for five "# <header>" sections but nothing guarantees it
complies, so every function here is best-effort and never raises: a missing
or malformed section becomes placeholder text.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from models import SECTION_HEADERS, AnalysisResult, Section, SourceCitation

logger = logging.getLogger(__name__)

# Renderers show at most this many pros / cons
MAX_LIST_ITEMS = 3

PLACEHOLDERS: dict[Section, str] = {
    Section.OVERVIEW: "暫無概覽資訊。",
    Section.PRICE:    "暫無價格資訊。",
    Section.VERDICT:  "暫無點評。",
}
NO_ITEMS = "暫無資料。"

_HEADER_LINE_RE = r"^(?P<hashes>#{{1,6}})[ \t]*{header}[^\n]*$"
_BULLET_RE      = re.compile(r"^[ \t]*-[ \t]+", re.MULTILINE)


def _section_body(raw_text: str, header: str) -> str | None:
    start = re.search(
        _HEADER_LINE_RE.format(header=re.escape(header)),
        raw_text,
        re.IGNORECASE | re.MULTILINE,
    )
    if not start:
        return None
    # The section ends at the next header of the same or a higher level
    level = len(start.group("hashes"))
    end = re.compile(rf"^#{{1,{level}}}[ \t]", re.MULTILINE).search(raw_text, start.end())
    return raw_text[start.end(): end.start() if end else len(raw_text)].strip()


def parse_section(raw_text: str | None, header: str) -> list[str]:
    """
    Extract the body of the "# <header>" section.

    Returns the trimmed bullet items when the body is a "- " list, otherwise a
    single-element list with the whole body. An absent header gives [].
    """
    if not raw_text or not header:
        return []
    body = _section_body(raw_text, header)
    if not body:
        return []
    if _BULLET_RE.search(body):
        return [item.strip() for item in _BULLET_RE.split(body) if item.strip()]
    return [body]


def first_sentence(text: str) -> str:
    head, _, _ = text.partition("。")
    return head.strip() or text.strip()


@dataclass(frozen=True)
class ProductReport:
    """Everything a results view needs, with placeholders already applied."""
    overview: str
    price: str
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)
    verdict: str = PLACEHOLDERS[Section.VERDICT]
    sources: list[SourceCitation] = field(default_factory=list)
    model_id: str = ""
    latency_ms: int = 0

    @property
    def price_headline(self) -> str:
        """Just the first sentence of the price analysis, for badges."""
        return first_sentence(self.price)

    @property
    def top_pros(self) -> list[str]:
        return self.pros[:MAX_LIST_ITEMS]

    @property
    def top_cons(self) -> list[str]:
        return self.cons[:MAX_LIST_ITEMS]


def build_report(result: AnalysisResult) -> ProductReport:
    def text_of(section: Section) -> str:
        items = parse_section(result.raw_text, SECTION_HEADERS[section])
        if not items:
            logger.info("Section %s missing from %s answer", section.value, result.model_id or "model")
            return PLACEHOLDERS[section]
        return items[0]

    return ProductReport(
        overview   = text_of(Section.OVERVIEW),
        price      = text_of(Section.PRICE),
        pros       = parse_section(result.raw_text, SECTION_HEADERS[Section.PROS]),
        cons       = parse_section(result.raw_text, SECTION_HEADERS[Section.CONS]),
        verdict    = text_of(Section.VERDICT),
        sources    = [s for s in result.sources if s.title],
        model_id   = result.model_id,
        latency_ms = result.latency_ms,
    )
