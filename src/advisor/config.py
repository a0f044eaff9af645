"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BybitSettings(BaseSettings):
    """Bybit public market data settings (v5 kline endpoint via ccxt)."""

    model_config = SettingsConfigDict(env_prefix="BYBIT_")

    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")
    category: str = "linear"
    max_concurrency: int = 4  # in-flight kline requests across all subscriptions
    request_timeout_ms: int = 10_000


class NamiSettings(BaseSettings):
    """Nami exchange chart history settings."""

    model_config = SettingsConfigDict(env_prefix="NAMI_")

    base_url: str = "https://nami.exchange"
    max_concurrency: int = 2
    request_timeout: float = 10.0


class OnusSettings(BaseSettings):
    """ONUS spot market candle settings."""

    model_config = SettingsConfigDict(env_prefix="ONUS_")

    base_url: str = "https://spot-markets.goonus.io"
    max_concurrency: int = 2
    request_timeout: float = 10.0


class IndicatorSettings(BaseSettings):
    """Indicator periods and analysis history gate.

    These are policy constants, kept configurable via INDICATOR_ variables.
    """

    model_config = SettingsConfigDict(env_prefix="INDICATOR_")

    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    ema_fast: int = 9
    ema_slow: int = 21
    volume_average_period: int = 20
    min_candles: int = 50  # below this a series is not analyzable
    default_limit: int = 200  # candles requested per fetch


class SignalSettings(BaseSettings):
    """Per-indicator signal thresholds and aggregation tuning."""

    model_config = SettingsConfigDict(env_prefix="SIGNAL_")

    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0

    # Confidence = base + spread_bps * weight, capped at max_indicator_confidence
    macd_base_confidence: float = 40.0
    macd_bps_weight: float = 4.0
    ema_base_confidence: float = 40.0
    ema_bps_weight: float = 2.0
    max_indicator_confidence: float = 95.0

    volume_spike_ratio: float = 1.5  # last volume vs SMA(volume)

    htf_conflict_penalty: float = 0.7  # multiplier when higher timeframe opposes
    htf_agreement_bonus: float = 5.0  # points when higher timeframe agrees
    news_nudge: float = 5.0  # points added/removed for aligned/opposed news

    hold_confidence_cap: float = 50.0


class OracleSettings(BaseSettings):
    """LLM oracle (Gemini generateContent) settings."""

    model_config = SettingsConfigDict(env_prefix="ORACLE_")

    api_key: SecretStr = SecretStr("")
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-1.5-flash-latest"
    timeout_seconds: float = 30.0
    temperature: float = 0.2


class MonitorSettings(BaseSettings):
    """Monitor scheduler settings."""

    model_config = SettingsConfigDict(env_prefix="MONITOR_")

    interval_seconds: int = 900  # 15 minutes between silent checks
    min_interval_seconds: int = 30
    default_exchange: Literal["bybit", "nami", "onus"] = "bybit"
    default_timeframe: str = "15m"
    # Subscribed at startup with the defaults above, e.g. '["BTCUSDT","ETHUSDT"]'
    instruments: list[str] = []


class NotificationSettings(BaseSettings):
    """Discord webhook notification settings."""

    model_config = SettingsConfigDict(env_prefix="NOTIFY_")

    discord_webhook_url: SecretStr = SecretStr("")
    username: str = "Trading Expert AI"
    timeout_seconds: float = 10.0


class NewsSettings(BaseSettings):
    """News feed settings for sentiment analysis.

    ``feed_url`` must return a JSON array of articles with title, url, source
    and snippet fields. An empty URL disables news (sentiment stays Neutral).
    """

    model_config = SettingsConfigDict(env_prefix="NEWS_")

    enabled: bool = True
    feed_url: str = ""
    max_articles: int = 10
    timeout_seconds: float = 10.0


class DashboardSettings(BaseSettings):
    """Operator API server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    bybit: BybitSettings = BybitSettings()
    nami: NamiSettings = NamiSettings()
    onus: OnusSettings = OnusSettings()
    indicators: IndicatorSettings = IndicatorSettings()
    signal: SignalSettings = SignalSettings()
    oracle: OracleSettings = OracleSettings()
    monitor: MonitorSettings = MonitorSettings()
    notify: NotificationSettings = NotificationSettings()
    news: NewsSettings = NewsSettings()
    dashboard: DashboardSettings = DashboardSettings()
