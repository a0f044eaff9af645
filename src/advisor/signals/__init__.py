"""Deterministic signal rules, aggregation and verdict synthesis."""

from advisor.signals.aggregate import Aggregate, aggregate_signals
from advisor.signals.synthesizer import SignalSynthesizer, SynthesisContext

__all__ = [
    "Aggregate",
    "SignalSynthesizer",
    "SynthesisContext",
    "aggregate_signals",
]
