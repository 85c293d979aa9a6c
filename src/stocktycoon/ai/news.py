"""AI-generated market news with a deterministic backup path."""

from __future__ import annotations

import asyncio
import json
import logging
import random
import time
from decimal import Decimal
from typing import TYPE_CHECKING

from openai import AsyncOpenAI
from pydantic import ValidationError as PydanticValidationError

from stocktycoon.ai.models import Headline, HeadlinePayload
from stocktycoon.ai.prompts import NEWS_SYSTEM_PROMPT, build_news_prompt
from stocktycoon.constants import NEWS_PREFIX, Sentiment
from stocktycoon.errors import ExternalServiceError
from stocktycoon.market.models import Instrument, NewsItem

if TYPE_CHECKING:
    from stocktycoon.config_loader import NewsConfig, OpenAIConfig
    from stocktycoon.market.state import MarketState

logger = logging.getLogger(__name__)


def extract_json_object(text: str) -> str | None:
    """
    Return the first balanced brace-delimited substring of `text`.

    Braces inside JSON string literals are ignored. Returns None when there is
    no opening brace or the first one is never closed.
    """
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def parse_headline(raw_response: str) -> Headline:
    """
    Strictly parse a generation response into a Headline.

    Raises:
        ExternalServiceError: No JSON object, invalid JSON, or schema mismatch.
    """
    candidate = extract_json_object(raw_response)
    if candidate is None:
        raise ExternalServiceError("no JSON object in generation response")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ExternalServiceError(f"malformed JSON in generation response: {e}") from e

    if not isinstance(data, dict):
        raise ExternalServiceError("generation response JSON is not an object")

    try:
        payload = HeadlinePayload.model_validate(data)
    except PydanticValidationError as e:
        raise ExternalServiceError(f"generation response failed schema check: {e}") from e

    return Headline(text=payload.headline, sentiment=payload.sentiment, source="ai")


class NewsGenerator:
    """
    Produces news events that shock one instrument's price.

    The generation service is tried first; any failure falls back to the
    configured backup headline table. `generate` never raises.
    """

    def __init__(
        self,
        state: MarketState,
        news_config: NewsConfig,
        openai_config: OpenAIConfig,
        rng: random.Random | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """
        Initialize the generator.

        Args:
            state: Market state to shock and publish into.
            news_config: Trigger cadence, shock size and backup headlines.
            openai_config: Generation service settings.
            rng: Random source (seedable for tests).
            client: Pre-built client; built from `openai_config` when omitted.
        """
        self.state = state
        self.config = news_config
        self.openai_config = openai_config
        self.rng = rng or random.Random()
        self._client = client

        if self._client is not None:
            return

        if not openai_config.enabled:
            logger.info("AI news disabled in config; using backup headlines")
            return

        if not openai_config.api_key or openai_config.api_key.startswith("${"):
            logger.warning("OpenAI API key not configured. Set OPENAI_API_KEY in .env")
            return

        self._client = AsyncOpenAI(api_key=openai_config.api_key)
        logger.info(f"AI news initialized with model: {openai_config.model}")

    @property
    def is_available(self) -> bool:
        """Check if the generation service is configured."""
        return self._client is not None

    def should_fire(self, tick: int) -> bool:
        """Every `every_ticks` ticks, fire with the configured probability."""
        if not self.config.enabled or tick <= 0:
            return False
        if tick % self.config.every_ticks != 0:
            return False
        return self.rng.random() < self.config.probability

    def shock_factor(self, sentiment: Sentiment) -> Decimal:
        if sentiment == Sentiment.GOOD:
            return Decimal("1") + self.config.shock_pct
        return Decimal("1") - self.config.shock_pct

    async def generate(self) -> NewsItem:
        """Pick a target, obtain a headline, shock the price and publish."""
        target = self.rng.choice(list(self.state.instruments.values()))

        try:
            headline = await self._request_headline(target)
            logger.info(f"AI news ({target.name}): {headline.text}")
        except ExternalServiceError as e:
            logger.warning(f"News generation failed ({e.message}); using backup headline")
            headline = self._backup_headline(target)

        item = NewsItem(
            text=f"{NEWS_PREFIX}{headline.text}",
            sentiment=headline.sentiment,
            instrument_id=target.id,
        )
        with self.state.lock:
            new_price = self.state.apply_shock(target.id, self.shock_factor(headline.sentiment))
            self.state.publish_news(item)
        logger.info(f"News published for {target.id} ({headline.sentiment.value}): price now {new_price}")
        return item

    def _backup_headline(self, target: Instrument) -> Headline:
        backup = self.rng.choice(self.config.backup_headlines)
        return Headline(
            text=f"{target.name}, {backup.headline}",
            sentiment=backup.sentiment,
            source="backup",
        )

    async def _request_headline(self, target: Instrument) -> Headline:
        if not self.is_available:
            raise ExternalServiceError("generation API credentials not configured")

        start_time = time.time()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(  # type: ignore[union-attr]
                    model=self.openai_config.model,
                    messages=[
                        {"role": "system", "content": NEWS_SYSTEM_PROMPT},
                        {"role": "user", "content": build_news_prompt(target.name, target.sector)},
                    ],
                    temperature=self.openai_config.temperature,
                    max_tokens=self.openai_config.max_tokens,
                ),
                timeout=self.openai_config.timeout_seconds,
            )
        except TimeoutError as e:
            latency_ms = int((time.time() - start_time) * 1000)
            raise ExternalServiceError(f"generation request timed out after {latency_ms}ms") from e
        except Exception as e:
            raise ExternalServiceError(f"generation request failed: {e}") from e

        try:
            raw_response = response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            raise ExternalServiceError(f"unexpected generation response shape: {e}") from e

        logger.debug(
            f"Generation completed in {int((time.time() - start_time) * 1000)}ms: {raw_response!r}"
        )
        return parse_headline(raw_response)
