"""Crypto signal advisor: candle ingestion, indicator signals and signal monitoring."""

__version__ = "0.1.0"
