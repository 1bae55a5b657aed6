"""
Effectiveness prediction from treatment feedback
"""

from .prediction_engine import EffectivenessPredictionEngine
from .sanitizer import data_quality, sanitize

__all__ = ['EffectivenessPredictionEngine', 'data_quality', 'sanitize']
