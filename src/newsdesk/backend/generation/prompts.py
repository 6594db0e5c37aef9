#!/usr/bin/env python3
"""Prompt construction for article generation."""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ...shared.types.results import ArticleCategory, CandidateItem
from ...shared.utils.text_utils import TextUtils

SOURCE_BODY_LIMIT = 3000

CATEGORY_CHOICES = ", ".join(f'"{c.value}"' for c in ArticleCategory)


def time_context(tz_name: str = "Asia/Kolkata", now: Optional[datetime] = None) -> str:
    """System-prompt suffix anchoring the model to today's date in the newsroom timezone."""
    current = (now or datetime.now(timezone.utc)).astimezone(ZoneInfo(tz_name))
    today = current.strftime("%A, %d %B %Y")
    return (f"\n[SYSTEM TIME CONTEXT: Today is {today}. All content must align with this "
            f"present timeline. Treat the news as current relative to this date.]\n")


def build_system_prompt(base_prompt: str, tz_name: str = "Asia/Kolkata", now: Optional[datetime] = None) -> str:
    return base_prompt.rstrip() + "\n" + time_context(tz_name, now)


def build_article_prompt(candidate: CandidateItem) -> str:
    """User prompt asking for a structured Hindi article from one candidate item."""
    body = TextUtils.clean_html(candidate.body_text, max_length=SOURCE_BODY_LIMIT) or candidate.headline
    return f"""SOURCE MATERIAL:
Headline: {candidate.headline}
Raw Text: {body}

YOUR TASK:
Write a high-quality news report in Hindi based ONLY on the source material.

GUIDELINES:
1. Headline: a punchy Hindi headline (max 15 words) that names the specific location.
2. Lead paragraph: the most important update first (who, what, where, when).
3. Details: use <ul><li> for key facts or a timeline.
4. Tone: professional, objective, journalistic.
5. Accuracy: do not invent facts. If a date or time is missing, do not guess.
6. Never mention the source publication or phrases like "read more" or "click here".

OUTPUT FORMAT:
Return a JSON object with:
- "headline": your Hindi headline
- "content": HTML formatted body using <p>, <h3>, <ul>, <li>
- "tags": array of relevant tags
- "category": one of {CATEGORY_CHOICES}
- "image_prompt": a detailed English prompt for an image generator based on the news context
"""
