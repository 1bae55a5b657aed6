"""
Treatment monitoring sessions and job scheduling
"""

from .scheduler import CancelToken, Scheduler, ThreadScheduler
from .session_manager import MonitoringSession, MonitoringSessionManager

__all__ = [
    'CancelToken',
    'Scheduler',
    'ThreadScheduler',
    'MonitoringSession',
    'MonitoringSessionManager',
]
