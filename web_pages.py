"""
web_pages.py — HTML for the browser UI.

Pages are Jinja2 templates under templates/, rendered with autoescaping on,
so every value coming from the user or the model is HTML-escaped.
"""
from __future__ import annotations

import base64
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

import config
from price_history import PricePoint, svg_polyline
from report import NO_ITEMS, ProductReport

templates_dir = Path(__file__).resolve().parent / "templates"
templates = Environment(
    loader=FileSystemLoader(str(templates_dir)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def index_page() -> str:
    return templates.get_template("index.html").render(popular=config.POPULAR_SEARCHES)


def results_page(
    report: ProductReport,
    query: str,
    image: Optional[bytes] = None,
    image_mime: str = "image/jpeg",
    price_points: Optional[list[PricePoint]] = None,
    show_model_info: bool = True,
) -> str:
    points = price_points or []
    return templates.get_template("results.html").render(
        report=report,
        query=query,
        title=query.strip() or "圖片搜尋結果",
        image_data=base64.b64encode(image).decode("ascii") if image else "",
        image_mime=image_mime,
        price_points=points,
        polyline=svg_polyline(points) if points else "",
        no_items=NO_ITEMS,
        show_model_info=show_model_info,
    )


def error_page(message: str) -> str:
    return templates.get_template("error.html").render(message=message)
