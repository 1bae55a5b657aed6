"""
Training-sample storage backends
"""

from .postgres_sample_store import PostgresSampleStore
from .sample_store import InMemorySampleStore, TrainingSampleStore

__all__ = ['TrainingSampleStore', 'InMemorySampleStore', 'PostgresSampleStore']
