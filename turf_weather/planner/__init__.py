"""
Reschedule planning over forecast windows
"""

from .reschedule import RescheduleOptimizer, time_of_day_adjustment

__all__ = ['RescheduleOptimizer', 'time_of_day_adjustment']
