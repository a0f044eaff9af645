"""Shared data models for the signal advisor.

Prices and volumes are plain floats: every output here is advisory and is
never used for order settlement.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum


class SignalDirection(str, Enum):
    """Direction of a single per-indicator signal."""

    BUY = "Buy"
    SELL = "Sell"
    NEUTRAL = "Neutral"


class VerdictDirection(str, Enum):
    """Aggregate recommendation of one evaluation cycle."""

    BUY = "Buy"
    SELL = "Sell"
    HOLD = "Hold"

    @property
    def actionable(self) -> bool:
        return self is not VerdictDirection.HOLD


class Mode(str, Enum):
    """Trading style the verdict is tailored to."""

    SWING = "swing"
    SCALPING = "scalping"


class SentimentLabel(str, Enum):
    """Overall news sentiment."""

    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    NEUTRAL = "Neutral"


class SubscriptionState(str, Enum):
    """Monitor state machine: IDLE -> EVALUATING -> (NOTIFYING | IDLE); STOPPED is terminal."""

    IDLE = "idle"
    EVALUATING = "evaluating"
    NOTIFYING = "notifying"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Candle:
    """One OHLCV sample. ``open_time`` is the bucket start in Unix milliseconds."""

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class CandleSeries:
    """Candles for one (exchange, instrument, timeframe), oldest first.

    Never mutated: repair and recomputation build a new series.
    """

    exchange: str
    instrument: str
    timeframe: str
    candles: tuple[Candle, ...] = ()

    def __len__(self) -> int:
        return len(self.candles)

    @property
    def closes(self) -> list[float]:
        return [c.close for c in self.candles]

    @property
    def volumes(self) -> list[float]:
        return [c.volume for c in self.candles]

    @property
    def last(self) -> Candle | None:
        return self.candles[-1] if self.candles else None

    def replace_candles(self, candles: list[Candle] | tuple[Candle, ...]) -> "CandleSeries":
        """Return a new series with the same identity and different candles."""
        return CandleSeries(
            exchange=self.exchange,
            instrument=self.instrument,
            timeframe=self.timeframe,
            candles=tuple(candles),
        )


@dataclass(frozen=True)
class MACDValue:
    """MACD line and its signal line at one point in time."""

    line: float
    signal: float

    @property
    def histogram(self) -> float:
        return self.line - self.signal


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Latest indicator values for the most recent candle of a series.

    An indicator is None when the series is shorter than its minimum period;
    ``missing`` names those indicators. ``high``, ``low`` and ``volume`` are
    None when the candle carries zero or missing values.
    """

    price: float
    open: float
    open_time: int
    rsi: float | None = None
    macd: MACDValue | None = None
    ema9: float | None = None
    ema21: float | None = None
    volume: float | None = None
    volume_average: float | None = None
    high: float | None = None
    low: float | None = None

    @property
    def missing(self) -> list[str]:
        names = []
        if self.rsi is None:
            names.append("rsi")
        if self.macd is None:
            names.append("macd")
        if self.ema9 is None:
            names.append("ema9")
        if self.ema21 is None:
            names.append("ema21")
        return names

    @property
    def ok(self) -> bool:
        """True when every price-derived indicator is defined."""
        return not self.missing


@dataclass(frozen=True)
class Signal:
    """A single per-indicator signal with 0-100 confidence."""

    indicator: str
    direction: SignalDirection
    confidence: float
    reasoning: str


@dataclass(frozen=True)
class NewsArticle:
    title: str
    url: str
    source: str
    snippet: str = ""


@dataclass
class NewsAnalysis:
    """News sentiment for one base symbol."""

    symbol: str
    sentiment: SentimentLabel
    summary: str = ""
    reasoning: str = ""
    articles: list[NewsArticle] = field(default_factory=list)


@dataclass
class Verdict:
    """Synthesized trading recommendation for one evaluation cycle.

    Direction and confidence come from the deterministic signal rules; entry,
    stop loss, take profit and the prose fields come from the oracle.
    """

    instrument: str
    exchange: str
    timeframe: str
    mode: Mode
    direction: VerdictDirection
    overall_confidence: float
    price: float
    entry: float
    stop_loss: float
    take_profit: float
    signals: list[Signal] = field(default_factory=list)
    market_overview: str = ""
    indicator_explanations: str = ""
    risk_management_advice: str = ""
    news: NewsAnalysis | None = None
    created_at: float = field(default_factory=time.time)

    def signal_for(self, indicator: str) -> Signal | None:
        return next((s for s in self.signals if s.indicator == indicator), None)


@dataclass
class MonitorSubscription:
    """A live monitoring registration for one (instrument, exchange, timeframe, mode).

    ``last_verdict_direction`` is the last direction an alert was raised for
    and is the dedup key; failed cycles never touch it.
    """

    instrument: str
    exchange: str
    timeframe: str
    mode: Mode = Mode.SWING
    interval_seconds: int = 900
    high_accuracy: bool = True
    oracle_credential: str | None = field(default=None, repr=False)
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: SubscriptionState = SubscriptionState.IDLE
    last_verdict_direction: VerdictDirection | None = None
    last_verdict: Verdict | None = None
    last_evaluated_at: float | None = None
    last_error: str | None = None
    notifications_sent: int = 0
    created_at: float = field(default_factory=time.time)

    @property
    def base_symbol(self) -> str:
        return base_symbol(self.instrument)


def base_symbol(instrument: str) -> str:
    """Strip quote currency and separators: 'BTCUSDT', 'BTC/USDT', 'BTC_USDT' -> 'BTC'."""
    symbol = instrument.upper()
    for sep in ("/", "_", "-", ":"):
        if sep in symbol:
            return symbol.split(sep)[0]
    for quote in ("USDT", "USDC", "VNDC", "VNST", "USD"):
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return symbol[: -len(quote)]
    return symbol
