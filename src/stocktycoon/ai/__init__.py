# AI Module Exports
"""AI-generated market news using OpenAI."""

from stocktycoon.ai.models import Headline, HeadlinePayload
from stocktycoon.ai.news import NewsGenerator, extract_json_object, parse_headline

__all__ = [
    "Headline",
    "HeadlinePayload",
    "NewsGenerator",
    "extract_json_object",
    "parse_headline",
]
