"""Gemini-backed oracle client.

The oracle turns the deterministic signal set into prose plus entry, stop
loss and take profit levels, and classifies news sentiment. It is a pure
boundary: every response is validated with pydantic before anything
downstream sees it, and any failure surfaces as ``OracleUnavailable``.

There is no module-level instance. Callers obtain a client from
``new_oracle_client`` with an explicit credential and own it for the
duration of one evaluation cycle::

    async with new_oracle_client(api_key, settings) as oracle:
        analysis = await oracle.analyze(request)
"""

import asyncio
import json

import aiohttp
from pydantic import BaseModel, ValidationError

from advisor.config import OracleSettings
from advisor.exceptions import OracleUnavailable
from advisor.logging import get_logger
from advisor.models import NewsArticle
from advisor.oracle.prompts import AnalysisRequest, build_analysis_prompt, build_sentiment_prompt
from advisor.oracle.schemas import OracleAnalysis, OracleSentiment

logger = get_logger(__name__)


def _strip_fences(text: str) -> str:
    """Remove a ```json ... ``` wrapper some models add despite JSON mode."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class OracleClient:
    """Thin async client for Gemini ``generateContent`` with JSON output."""

    def __init__(
        self,
        api_key: str,
        settings: OracleSettings,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._api_key = api_key
        self._settings = settings
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "OracleClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def analyze(self, request: AnalysisRequest) -> OracleAnalysis:
        """Request prose and price levels for one verdict.

        Raises:
            OracleUnavailable: Transport failure or output that fails validation.
        """
        text = await self._generate(build_analysis_prompt(request))
        return self._parse(text, OracleAnalysis)

    async def classify_sentiment(
        self, symbol: str, articles: list[NewsArticle]
    ) -> OracleSentiment:
        """Classify overall sentiment of ``articles`` for ``symbol``."""
        text = await self._generate(build_sentiment_prompt(symbol, articles))
        return self._parse(text, OracleSentiment)

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _generate(self, prompt: str) -> str:
        url = f"{self._settings.base_url.rstrip('/')}/models/{self._settings.model}:generateContent"
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._settings.temperature,
                "responseMimeType": "application/json",
            },
        }
        headers = {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}
        timeout = aiohttp.ClientTimeout(total=self._settings.timeout_seconds)

        try:
            async with self._get_session().post(
                url, json=body, headers=headers, timeout=timeout
            ) as resp:
                status = resp.status
                raw = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise OracleUnavailable(f"oracle request failed: {e}") from e

        if status != 200:
            logger.warning("oracle_http_error", status=status, body=raw[:300])
            raise OracleUnavailable(f"oracle returned HTTP {status}")

        payload = None
        try:
            payload = json.loads(raw)
            candidate = payload["candidates"][0]
            return candidate["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            block = payload.get("promptFeedback") if isinstance(payload, dict) else None
            logger.warning("oracle_empty_response", prompt_feedback=block)
            raise OracleUnavailable("oracle response carried no candidate text") from e

    @staticmethod
    def _parse(text: str, schema: type[BaseModel]):
        try:
            return schema.model_validate(json.loads(_strip_fences(text)))
        except (ValueError, ValidationError) as e:
            logger.warning(
                "oracle_output_invalid", schema=schema.__name__, error=str(e)[:300]
            )
            raise OracleUnavailable(f"oracle output failed validation: {e}") from e


def new_oracle_client(
    credential: str | None,
    settings: OracleSettings,
    session: aiohttp.ClientSession | None = None,
) -> OracleClient:
    """Create an oracle client for one evaluation cycle.

    Args:
        credential: Per-subscription API key; falls back to ``settings.api_key``.
        settings: Oracle settings (model, endpoint, timeout).
        session: Optional shared aiohttp session (not closed by the client).

    Raises:
        OracleUnavailable: No API key available.
    """
    api_key = credential or settings.api_key.get_secret_value()
    if not api_key:
        raise OracleUnavailable("no oracle API key configured")
    return OracleClient(api_key, settings, session=session)
