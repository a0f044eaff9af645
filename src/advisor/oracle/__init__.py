"""Oracle boundary: prompt payloads, validated output schemas and the client factory."""

from advisor.oracle.client import OracleClient, new_oracle_client
from advisor.oracle.prompts import AnalysisRequest
from advisor.oracle.schemas import OracleAnalysis, OracleSentiment, OracleSignal

__all__ = [
    "AnalysisRequest",
    "OracleAnalysis",
    "OracleClient",
    "OracleSentiment",
    "OracleSignal",
    "new_oracle_client",
]
