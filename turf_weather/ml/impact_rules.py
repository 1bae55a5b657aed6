"""
Per-feature impact rules used to explain effectiveness predictions.

Each treatment rule table maps a feature to an ordered list of
(predicate, impact) pairs; the first matching predicate wins and a feature
with no match is neutral. Extreme conditions are checked first and, when
present, are the whole explanation.
"""

import logging
from typing import Callable, Dict, List, Mapping, Tuple

from ..models import Impact, ImpactFactor, is_number

logger = logging.getLogger(__name__)

Rule = Tuple[Callable[[float], bool], Impact]
RuleTable = Dict[str, List[Rule]]

EXTREME_RULES: Dict[str, Callable[[float], bool]] = {
    'temperature': lambda v: v > 35 or v < 0,
    'windSpeed': lambda v: v > 25,
    'precipitation': lambda v: v > 1.0,
    'soilMoisture': lambda v: v < 10 or v > 90,
}

FERTILIZATION_RULES: RuleTable = {
    'temperature': [(lambda v: 15 <= v <= 25, 'positive'), (lambda v: v < 10 or v > 30, 'negative')],
    'precipitation': [(lambda v: 0.1 <= v <= 0.3, 'positive'), (lambda v: v > 0.5, 'negative')],
    'windSpeed': [(lambda v: v < 10, 'positive'), (lambda v: v > 20, 'negative')],
    'humidity': [(lambda v: 40 <= v <= 70, 'positive'), (lambda v: v > 85, 'negative')],
    'soilMoisture': [(lambda v: 40 <= v <= 60, 'positive'), (lambda v: v < 30 or v > 80, 'negative')],
    'cloudCover': [(lambda v: v <= 50, 'positive')],
}

AERATION_RULES: RuleTable = {
    'soilMoisture': [
        (lambda v: 40 <= v <= 60, 'positive'),
        (lambda v: v < 30, 'negative'),
        (lambda v: v > 70, 'negative'),
    ],
    'temperature': [(lambda v: 10 <= v <= 25, 'positive'), (lambda v: v > 30, 'negative')],
    'precipitation': [(lambda v: v < 0.1, 'positive'), (lambda v: v > 0.3, 'negative')],
}

SEEDING_RULES: RuleTable = {
    'soilMoisture': [(lambda v: 50 <= v <= 70, 'positive'), (lambda v: v < 40, 'negative')],
    'temperature': [(lambda v: 18 <= v <= 24, 'positive'), (lambda v: v < 10 or v > 30, 'negative')],
    'precipitation': [(lambda v: 0.1 <= v <= 0.3, 'positive'), (lambda v: v > 0.5, 'negative')],
    'windSpeed': [(lambda v: v < 8, 'positive'), (lambda v: v > 15, 'negative')],
    'cloudCover': [(lambda v: 30 <= v <= 70, 'positive')],
}

WEED_CONTROL_RULES: RuleTable = {
    'temperature': [(lambda v: 15 <= v <= 28, 'positive'), (lambda v: v > 32, 'negative')],
    'precipitation': [(lambda v: v < 0.1, 'positive'), (lambda v: v > 0.2, 'negative')],
    'windSpeed': [(lambda v: v < 8, 'positive'), (lambda v: v > 12, 'negative')],
    'humidity': [(lambda v: 40 <= v <= 70, 'positive'), (lambda v: v > 80, 'negative')],
    'cloudCover': [(lambda v: v < 80, 'positive')],
}

GENERAL_RULES: RuleTable = {
    'temperature': [(lambda v: 15 <= v <= 28, 'positive'), (lambda v: v < 5 or v > 32, 'negative')],
    'precipitation': [(lambda v: 0.1 <= v <= 0.3, 'positive'), (lambda v: v > 0.5, 'negative')],
    'windSpeed': [(lambda v: v < 15, 'positive'), (lambda v: v > 20, 'negative')],
    'humidity': [(lambda v: 40 <= v <= 70, 'positive'), (lambda v: v > 85, 'negative')],
    'soilMoisture': [(lambda v: 40 <= v <= 60, 'positive'), (lambda v: v < 20 or v > 80, 'negative')],
}

RULE_TABLES: Dict[str, RuleTable] = {
    'fertilization': FERTILIZATION_RULES,
    'aeration': AERATION_RULES,
    'seeding': SEEDING_RULES,
    'weedcontrol': WEED_CONTROL_RULES,
}


def rule_table(treatment_type: str) -> RuleTable:
    """Rule table for a treatment type; types without one use the general rules"""
    key = treatment_type.replace(' ', '').replace('_', '').replace('-', '').lower()
    return RULE_TABLES.get(key, GENERAL_RULES)


def evaluate(rules: RuleTable, feature: str, value: float) -> Impact:
    for predicate, impact in rules.get(feature, ()):
        if predicate(value):
            return impact
    return 'neutral'


def is_extreme(feature: str, value: float) -> bool:
    check = EXTREME_RULES.get(feature)
    return bool(check and check(value))


def metric_confidence(feature: str, value: float, threshold: float) -> float:
    """Per-feature confidence starting at 0.9, never below threshold"""
    confidence = 0.9
    if feature == 'temperature' and (value < 0 or value > 100):
        confidence *= 0.8
    elif feature == 'humidity' and value < 20:
        confidence *= 0.85
    elif feature == 'windSpeed' and value > 20:
        confidence *= 0.75
    elif feature == 'precipitation' and 0 < value < 0.1:
        confidence *= 0.9
    elif feature == 'soilMoisture' and (value < 10 or value > 90):
        confidence *= 0.85
    return max(confidence, threshold)


def analyze_factors(
    data: Mapping[str, float],
    treatment_type: str,
    feature_weights: Mapping[str, float],
    threshold: float,
) -> List[ImpactFactor]:
    """
    Impact factors for a sanitized reading

    Returns only the extreme (negative) factors when any feature is extreme,
    otherwise one factor per weighted feature present, negatives first and
    then by weight descending.
    """
    present = [(f, w, data[f]) for f, w in feature_weights.items() if is_number(data.get(f))]

    extreme = [
        ImpactFactor(name=f, weight=w, impact='negative', confidence=metric_confidence(f, v, threshold))
        for f, w, v in present
        if is_extreme(f, v)
    ]
    if extreme:
        logger.debug(f"Extreme conditions dominate: {[f.name for f in extreme]}")
        return extreme

    rules = rule_table(treatment_type)
    factors = [
        ImpactFactor(name=f, weight=w, impact=evaluate(rules, f, v), confidence=metric_confidence(f, v, threshold))
        for f, w, v in present
    ]
    factors.sort(key=lambda factor: (factor.impact != 'negative', -factor.weight))
    return factors
