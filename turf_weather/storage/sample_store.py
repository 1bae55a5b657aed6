"""
Training-sample store interface and in-memory implementation
"""

import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import TrainingSample


class TrainingSampleStore(ABC):
    """Append-only store of (weather, treatment, outcome) samples"""

    @abstractmethod
    def create(self, sample: TrainingSample) -> None:
        """
        Append a sample

        Raises:
            TrainingStoreError: on storage failure
        """
        pass

    @abstractmethod
    def find_many(
        self,
        min_quality: float = 0.0,
        limit: int = 1000,
        treatment_type: Optional[str] = None,
    ) -> List[TrainingSample]:
        """
        Most recent samples first, filtered by data quality and optionally
        treatment type

        Raises:
            TrainingStoreError: on storage failure
        """
        pass

    def close(self) -> None:
        """Release any held resources"""
        pass


class InMemorySampleStore(TrainingSampleStore):
    """Process-local store; used when no database is configured"""

    def __init__(self):
        self._lock = threading.Lock()
        self._samples: List[TrainingSample] = []

    def create(self, sample: TrainingSample) -> None:
        with self._lock:
            self._samples.append(sample)

    def find_many(
        self,
        min_quality: float = 0.0,
        limit: int = 1000,
        treatment_type: Optional[str] = None,
    ) -> List[TrainingSample]:
        with self._lock:
            samples = list(self._samples)
        matching = [
            s for s in samples
            if s.data_quality >= min_quality
            and (treatment_type is None or s.treatment_type == treatment_type)
        ]
        # Stable sort keeps insertion order for equal timestamps, newest first
        matching.reverse()
        matching.sort(key=lambda s: s.timestamp, reverse=True)
        return matching[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
