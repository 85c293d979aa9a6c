"""Prompt templates for market news generation."""

from __future__ import annotations

NEWS_SYSTEM_PROMPT = """You are a financial wire service writing breaking market headlines.

Rules:
1. Respond ONLY with valid JSON.
2. No explanation, no markdown, no commentary.

JSON format:
{
    "headline": "<headline, at most 60 characters>",
    "sentiment": "good" or "bad"
}"""


def build_news_prompt(name: str, sector: str) -> str:
    """Build the user prompt for one breaking-news headline about `name`."""
    sector_line = f" ({sector})" if sector else ""
    return f"""Write one breaking stock market headline.

Company: {name}{sector_line}
Situation: pick either good news or bad news at random.

Respond with the JSON object only."""
