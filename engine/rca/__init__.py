"""
Root cause analysis package exports: the rule base, confidence scoring and the diagnosis rankers.
"""

from engine.rca.ranker import NO_HYPOTHESIS_MESSAGE, DiagnosisRanker, RuleBasedRanker
from engine.rca.rules import HypothesisRule, RuleBase, RuleContext, RuleMatch, default_rule_base

__all__ = [
    "NO_HYPOTHESIS_MESSAGE",
    "DiagnosisRanker",
    "RuleBasedRanker",
    "HypothesisRule",
    "RuleBase",
    "RuleContext",
    "RuleMatch",
    "default_rule_base",
]
