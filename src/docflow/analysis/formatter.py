"""Render analysis payloads as fixed-section markdown reports.

A missing or wrongly typed field drops its section; renderers never raise.
"""

from __future__ import annotations

import json
import math
from typing import Any, Callable


def format_analysis(raw_data: Any, analysis_type: str) -> str:
    """Render ``raw_data`` for ``analysis_type``. Pure and idempotent."""
    if not isinstance(raw_data, dict):
        if isinstance(raw_data, str):
            return raw_data
        if not raw_data:
            return "No analysis data available"
        return _dump(raw_data)

    renderer = _RENDERERS.get(analysis_type)
    if renderer is None:
        return _dump(raw_data)
    return renderer(raw_data)


def _format_comprehensive(data: dict) -> str:
    results = _mapping(data.get("results"))
    if results is None:
        return _dump(data)

    comprehensive = _mapping(results.get("comprehensive")) or {}
    lines = ["# Comprehensive Document Analysis", ""]

    summary = _mapping(comprehensive.get("summary"))
    if summary is not None:
        executive = _text(summary.get("executive_summary"))
        if executive:
            lines += ["## Executive Summary", executive, ""]
        points = _items(summary.get("key_points"))
        if points:
            lines += ["### Key Points", *_bullets(points), ""]

    content = _mapping(comprehensive.get("content_analysis"))
    if content is not None:
        section = _fields(
            content,
            [
                ("document_type", "Document Type"),
                ("writing_style", "Writing Style"),
                ("complexity_level", "Complexity"),
            ],
        )
        topics = _items(content.get("main_topics"))
        if topics:
            section += ["", "**Main Topics:**", *_bullets(topics)]
        if section:
            lines += ["## Content Analysis", *section, ""]

    keywords = _mapping(results.get("keywords"))
    primary = _items(keywords.get("primary_keywords")) if keywords else []
    if primary:
        lines += ["## Keywords", f"**Primary:** {', '.join(primary)}", ""]

    categorization = _mapping(results.get("categorization"))
    if categorization is not None:
        section = _fields(
            categorization,
            [("primary_category", "Category"), ("industry", "Industry"), ("industry_domain", "Industry")],
        )
        if section:
            lines += ["## Categorization", *section, ""]

    sentiment = _mapping(results.get("sentiment"))
    if sentiment is not None:
        section = _fields(sentiment, [("overall_sentiment", "Overall Sentiment"), ("emotional_tone", "Tone")])
        if section:
            lines += ["## Sentiment Analysis", *section, ""]

    insights = _mapping(comprehensive.get("actionable_insights")) or {}
    recommendations = _items(insights.get("recommendations"))
    if recommendations:
        lines += ["## Recommendations", *_bullets(recommendations), ""]

    return "\n".join(lines).rstrip() + "\n"


def _format_summary(data: dict) -> str:
    summary = data.get("summary")
    if summary is None or summary == "":
        return "No summary available"
    return summary if isinstance(summary, str) else _dump(summary)


def _format_keywords(data: dict) -> str:
    keywords = _mapping(data.get("keywords"))
    if keywords is None:
        return "No keywords available"

    lines = ["# Keywords Analysis", ""]
    for key, title in (
        ("primary_keywords", "Primary Keywords"),
        ("secondary_keywords", "Secondary Keywords"),
        ("technical_terms", "Technical Terms"),
    ):
        items = _items(keywords.get(key))
        if items:
            lines += [f"## {title}", *_bullets(items), ""]
    return "\n".join(lines).rstrip() + "\n"


def _format_categorization(data: dict) -> str:
    cat = _mapping(data.get("categorization"))
    if cat is None:
        return "No categorization available"

    lines = ["# Document Categorization", ""]
    lines += _fields(
        cat,
        [
            ("primary_category", "Primary Category"),
            ("industry_domain", "Industry"),
            ("document_type", "Document Type"),
        ],
    )
    confidence = _percent(cat.get("confidence_score"))
    if confidence:
        lines.append(f"**Confidence:** {confidence}")
    secondary = _items(cat.get("secondary_categories"))
    if secondary:
        lines += ["", "**Secondary Categories:**", *_bullets(secondary)]
    return "\n".join(lines).rstrip() + "\n"


def _format_sentiment(data: dict) -> str:
    sentiment = _mapping(data.get("sentiment"))
    if sentiment is None:
        return "No sentiment analysis available"

    lines = ["# Sentiment Analysis", ""]
    lines += _fields(sentiment, [("overall_sentiment", "Overall Sentiment"), ("emotional_tone", "Emotional Tone")])
    confidence = _percent(sentiment.get("confidence_score"))
    if confidence:
        lines.append(f"**Confidence:** {confidence}")
    for key, title in (
        ("key_emotions", "Key Emotions"),
        ("positive_aspects", "Positive Aspects"),
        ("concerns_identified", "Concerns"),
    ):
        items = _items(sentiment.get(key))
        if items:
            lines += ["", f"**{title}:**", *_bullets(items)]
    return "\n".join(lines).rstrip() + "\n"


_RENDERERS: dict[str, Callable[[dict], str]] = {
    "comprehensive": _format_comprehensive,
    "summary": _format_summary,
    "keywords": _format_keywords,
    "categorization": _format_categorization,
    "sentiment": _format_sentiment,
}


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def _mapping(value: Any) -> dict | None:
    return value if isinstance(value, dict) else None


def _text(value: Any) -> str:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value).strip()
    return ""


def _items(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return []


def _bullets(items: list[str]) -> list[str]:
    return [f"- {item}" for item in items]


def _fields(data: dict, keys: list[tuple[str, str]]) -> list[str]:
    lines = []
    seen: set[str] = set()
    for key, title in keys:
        value = _text(data.get(key))
        if value and title not in seen:
            seen.add(title)
            lines.append(f"**{title}:** {value}")
    return lines


def _percent(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value:
        return ""
    if not math.isfinite(value):
        return ""
    return f"{round(value * 100)}%"
