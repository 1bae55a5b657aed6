"""
Weather evaluation processors
"""

from .suitability_scorer import SuitabilityScorer
from .alert_generator import AlertGenerator
from .treatment_advisor import TreatmentAdvisor

__all__ = [
    'SuitabilityScorer',
    'AlertGenerator',
    'TreatmentAdvisor',
]
