"""News sentiment for the base asset of an instrument.

Articles come from a configurable JSON feed (``NEWS_FEED_URL``) queried with
``?symbol=<BASE>&limit=<n>``. The feed may answer with a bare list of
articles or with ``{"articles": [...]}``; each article needs a title and
may carry ``url``, ``source`` and ``snippet`` (or ``description``).
Classification is delegated to the oracle. With no articles the result is
Neutral with a "no data" reasoning and the oracle is not called.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import aiohttp

from advisor.config import NewsSettings
from advisor.logging import get_logger
from advisor.models import NewsAnalysis, NewsArticle, SentimentLabel

if TYPE_CHECKING:
    from advisor.oracle.client import OracleClient

logger = get_logger(__name__)

NO_DATA_REASONING = "no data: no recent news articles found"


def _parse_articles(payload: object, limit: int) -> list[NewsArticle]:
    if isinstance(payload, dict):
        payload = payload.get("articles", [])
    if not isinstance(payload, list):
        return []

    articles = []
    for item in payload:
        if not isinstance(item, dict) or not item.get("title"):
            continue
        articles.append(
            NewsArticle(
                title=str(item["title"]),
                url=str(item.get("url", "")),
                source=str(item.get("source", "")),
                snippet=str(item.get("snippet") or item.get("description") or ""),
            )
        )
        if len(articles) >= limit:
            break
    return articles


class NewsFeed:
    """Fetches recent articles for a base symbol."""

    def __init__(
        self,
        settings: NewsSettings,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._settings = settings
        self._session = session
        self._owns_session = session is None

    async def fetch(self, symbol: str) -> list[NewsArticle]:
        """Return up to ``max_articles`` articles; an unreachable feed yields []."""
        if not self._settings.feed_url:
            return []

        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

        params = {"symbol": symbol, "limit": self._settings.max_articles}
        timeout = aiohttp.ClientTimeout(total=self._settings.timeout_seconds)
        try:
            async with self._session.get(
                self._settings.feed_url, params=params, timeout=timeout
            ) as resp:
                resp.raise_for_status()
                payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("news_feed_failed", symbol=symbol, error=str(e))
            return []

        return _parse_articles(payload, self._settings.max_articles)

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None


class NewsSentimentService:
    """Combines the article feed with oracle sentiment classification."""

    def __init__(self, settings: NewsSettings, feed: NewsFeed | None = None) -> None:
        self._settings = settings
        self._feed = feed or NewsFeed(settings)

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    async def get_sentiment(self, symbol: str, oracle: OracleClient) -> NewsAnalysis:
        """Classify news sentiment for ``symbol`` (a base asset such as "BTC").

        Raises:
            OracleUnavailable: The oracle could not classify the articles.
        """
        articles = await self._feed.fetch(symbol)
        if not articles:
            logger.debug("news_no_articles", symbol=symbol)
            return NewsAnalysis(
                symbol=symbol,
                sentiment=SentimentLabel.NEUTRAL,
                summary="No recent news found.",
                reasoning=NO_DATA_REASONING,
            )

        result = await oracle.classify_sentiment(symbol, articles)
        logger.info(
            "news_sentiment_classified",
            symbol=symbol,
            sentiment=result.sentiment.value,
            articles=len(articles),
        )
        return NewsAnalysis(
            symbol=symbol,
            sentiment=result.sentiment,
            summary=result.summary,
            reasoning=result.reasoning,
            articles=articles,
        )

    async def close(self) -> None:
        await self._feed.close()
