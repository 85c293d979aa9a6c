"""Data models for AI headline generation."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stocktycoon.constants import Sentiment


class HeadlinePayload(BaseModel):
    """
    Schema of the JSON object the generation service must return.

    Both fields are required; anything else in the object is ignored.
    """

    model_config = ConfigDict(extra="ignore")

    headline: str = Field(min_length=1)
    sentiment: Sentiment

    @field_validator("headline")
    @classmethod
    def strip_headline(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("headline must not be blank")
        return v


@dataclass(frozen=True)
class Headline:
    """A headline ready to publish."""

    text: str
    sentiment: Sentiment
    source: str  # "ai" or "backup"
