"""Pydantic schemas validating oracle output before anything downstream uses it."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from advisor.models import SentimentLabel

_DIRECTION_ALIASES = {
    "BUY": "BUY",
    "LONG": "BUY",
    "SELL": "SELL",
    "SHORT": "SELL",
    "HOLD": "HOLD",
    "NEUTRAL": "HOLD",
    "WAIT": "HOLD",
}


class OracleSignal(BaseModel):
    """Per-indicator commentary returned by the oracle (informational only)."""

    model_config = ConfigDict(extra="ignore")

    indicator: str
    signal: str = ""
    reasoning: str = ""


class OracleAnalysis(BaseModel):
    """Narrative analysis plus suggested price levels."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    market_overview: str = Field(alias="marketOverview")
    indicator_explanations: str = Field(alias="indicatorExplanations")
    buy_sell_signal: str = Field(alias="buySellSignal")
    overall_confidence: float = Field(alias="overallConfidence", ge=0, le=100)
    entry: float = Field(gt=0)
    stop_loss: float = Field(alias="stopLoss", gt=0)
    take_profit: float = Field(alias="takeProfit", gt=0)
    risk_management_advice: str = Field(alias="riskManagementAdvice")
    signals: list[OracleSignal] = Field(default_factory=list)

    @field_validator("buy_sell_signal")
    @classmethod
    def _normalize_direction(cls, value: str) -> str:
        key = value.strip().upper()
        for word, direction in _DIRECTION_ALIASES.items():
            if key.startswith(word):
                return direction
        raise ValueError(f"buySellSignal must be BUY, SELL or HOLD, got {value!r}")


class OracleSentiment(BaseModel):
    """News sentiment classification."""

    model_config = ConfigDict(extra="ignore")

    sentiment: SentimentLabel
    summary: str = ""
    reasoning: str = ""

    @field_validator("sentiment", mode="before")
    @classmethod
    def _capitalize(cls, value: object) -> object:
        return value.strip().capitalize() if isinstance(value, str) else value
