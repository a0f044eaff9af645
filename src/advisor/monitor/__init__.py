"""Evaluation pipeline and the per-subscription monitor scheduler."""

from advisor.monitor.pipeline import AnalysisPipeline
from advisor.monitor.scheduler import MonitorScheduler, should_notify

__all__ = ["AnalysisPipeline", "MonitorScheduler", "should_notify"]
