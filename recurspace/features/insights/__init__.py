"""
Insight rule engine

Derives advisory recommendations from a user's tasks and workflows:
- Aggregation helpers (ratios, overdue, grouping, argmax)
- Optimization rule catalogue (workflow, task, schedule, general)
- Pattern analysis and confidence summaries

All logic is pure and deterministic given an explicit `now`.
"""

from recurspace.features.insights.engine import EvaluationParams, evaluate, rank
from recurspace.features.insights.patterns import PatternReport, analyze_patterns
from recurspace.features.insights.rules import RULE_CATALOGUE, EvaluationType
from recurspace.features.insights.summarizer import InsightSummary, summarize

__all__ = [
    "EvaluationParams",
    "EvaluationType",
    "InsightSummary",
    "PatternReport",
    "RULE_CATALOGUE",
    "analyze_patterns",
    "evaluate",
    "rank",
    "summarize",
]
