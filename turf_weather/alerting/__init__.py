"""
Alert batching and dispatch
"""

from .batcher import AlertBatcher
from .dispatch import (
    AlertDispatcher,
    AlertDispatchError,
    LoggingDispatcher,
    TreatmentInfo,
    TreatmentLookup,
    WebhookDispatcher,
)

__all__ = [
    'AlertBatcher',
    'AlertDispatcher',
    'AlertDispatchError',
    'LoggingDispatcher',
    'TreatmentInfo',
    'TreatmentLookup',
    'WebhookDispatcher',
]
