"""
Shared prompt and base class for generation providers.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from models import SECTION_HEADERS, AnalysisRequest, AnalysisResult

logger = logging.getLogger(__name__)

# ── Prompt (shared across all providers) ──────────────────────────────────────

IMAGE_PROMPT = "請辨識這張圖片中的產品，並針對該產品進行分析。"

# Hint shown to the model after each header, in SECTION_HEADERS order
_SECTION_GUIDANCE = (
    "(簡短介紹產品是什麼，如果是圖片搜尋請先說明辨識出的型號)。",
    "(說明目前的市場價格範圍、是否有特價，幣別請主要使用 TWD)。",
    "(條列出使用者在論壇上提到的主要優點)。",
    "(條列出使用者在論壇上提到的抱怨或災情)。",
    "(綜合 PTT/Threads 鄉民意見與客觀規格，給出最終購買建議)。",
)

ANALYSIS_PROMPT = """你是一位專業的台灣購物助手。使用者正在搜尋： "{query}" {image_note}。

請執行 Google Search 來尋找該產品的最新資訊、價格與評價。

**重要評價搜尋策略：**
請特別針對 **PTT (批踢踢實業坊)**、**Dcard**、**Mobile01**、**Threads** 以及國外知名論壇 (如 Reddit) 搜尋真實的使用者心得與評價。不要只看官方宣傳。

請嚴格按照以下 Markdown 標題格式回傳 (使用繁體中文)：

{sections}

語氣請保持客觀、專業但親切，使用台灣習慣的用語。
"""


def build_analysis_prompt(query: str, has_image: bool = False) -> str:
    """Fill the instruction template with the user's query and the five fixed headers."""
    sections = "\n\n".join(
        f"# {header}\n{guidance}"
        for header, guidance in zip(SECTION_HEADERS.values(), _SECTION_GUIDANCE)
    )
    return ANALYSIS_PROMPT.format(
        query=query.strip(),
        image_note="(請結合圖片辨識結果)" if has_image else "",
        sections=sections,
    )


def detect_mime_type(image_bytes: bytes) -> str:
    """Sniff the image format from its magic bytes; anything unknown is sent as JPEG."""
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:4] == b"GIF8":
        return "image/gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


# ── Abstract base ──────────────────────────────────────────────────────────────

class GenerationProvider(ABC):
    """Base class all generation providers must implement."""

    name: str           # e.g. "google"

    @abstractmethod
    async def generate(self, model_id: str, request: AnalysisRequest) -> AnalysisResult:
        """
        Run one grounded generation call against model_id.
        Raises whatever the SDK raises; the caller decides whether to fall back.
        """
        ...

    def full_name(self, model_id: str) -> str:
        return f"{self.name}/{model_id}"
