"""
PostgreSQL training-sample store
"""

import logging
import threading
from contextlib import contextmanager
from typing import List, Optional

import psycopg2
from psycopg2.extras import Json, RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from ..errors import TrainingStoreError
from ..models import TrainingSample
from .sample_store import TrainingSampleStore

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS weather_training_data (
    id BIGSERIAL PRIMARY KEY,
    weather_data JSONB NOT NULL,
    treatment_type TEXT NOT NULL,
    effectiveness SMALLINT NOT NULL CHECK (effectiveness BETWEEN 1 AND 5),
    timestamp TIMESTAMPTZ NOT NULL,
    data_quality DOUBLE PRECISION NOT NULL,
    confidence DOUBLE PRECISION NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_weather_training_data_quality_ts
    ON weather_training_data (data_quality, timestamp DESC);
"""


class PostgresSampleStore(TrainingSampleStore):
    """
    Training samples in a PostgreSQL table (weather reading as JSONB)

    Each operation checks a connection out of a thread-safe pool, so
    concurrent callers never share a transaction.
    """

    def __init__(self, postgres_url: str, min_connections: int = 1, max_connections: int = 10):
        """
        Initialize the store

        Args:
            postgres_url: PostgreSQL connection URL
            min_connections: Connections opened with the pool
            max_connections: Upper bound on concurrent connections
        """
        self.postgres_url = postgres_url
        self.min_connections = min_connections
        self.max_connections = max_connections
        self._pool: Optional[ThreadedConnectionPool] = None
        self._pool_lock = threading.Lock()

    def connect(self) -> ThreadedConnectionPool:
        """Create the connection pool if it does not exist yet"""
        with self._pool_lock:
            if self._pool is None or self._pool.closed:
                try:
                    self._pool = ThreadedConnectionPool(
                        minconn=self.min_connections,
                        maxconn=self.max_connections,
                        dsn=self.postgres_url,
                        cursor_factory=RealDictCursor,
                    )
                    logger.info("PostgreSQL connection pool created")
                except psycopg2.Error as e:
                    logger.error(f"PostgreSQL connection failed: {e}")
                    raise TrainingStoreError(f"PostgreSQL connection failed: {e}") from e
            return self._pool

    def close(self) -> None:
        with self._pool_lock:
            if self._pool is not None and not self._pool.closed:
                self._pool.closeall()
            self._pool = None

    @contextmanager
    def get_connection(self):
        """
        Pooled connection context manager

        Commits on success. On a database error the transaction is rolled back,
        a broken connection is discarded instead of returned to the pool, and
        the error is raised as TrainingStoreError.
        """
        pool = self.connect()
        try:
            conn = pool.getconn()
        except psycopg2.Error as e:
            raise TrainingStoreError(f"No database connection available: {e}") from e

        discard = False
        try:
            yield conn
            conn.commit()
        except psycopg2.Error as e:
            discard = isinstance(e, (psycopg2.OperationalError, psycopg2.InterfaceError)) or bool(conn.closed)
            if not conn.closed:
                conn.rollback()
            raise TrainingStoreError(f"Training store error: {e}") from e
        except Exception:
            if not conn.closed:
                conn.rollback()
            raise
        finally:
            pool.putconn(conn, close=discard)

    def ensure_schema(self) -> None:
        with self.get_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(SCHEMA_SQL)
        logger.info("Training-sample schema ready")

    def create(self, sample: TrainingSample) -> None:
        with self.get_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(
                    """
                    INSERT INTO weather_training_data
                        (weather_data, treatment_type, effectiveness, timestamp, data_quality, confidence)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    """,
                    (
                        Json(sample.weather_conditions),
                        sample.treatment_type,
                        sample.effectiveness,
                        sample.timestamp,
                        sample.data_quality,
                        sample.confidence,
                    ),
                )

    def find_many(
        self,
        min_quality: float = 0.0,
        limit: int = 1000,
        treatment_type: Optional[str] = None,
    ) -> List[TrainingSample]:
        query = """
            SELECT weather_data, treatment_type, effectiveness, timestamp, data_quality, confidence
            FROM weather_training_data
            WHERE data_quality >= %s
        """
        params: list = [min_quality]
        if treatment_type is not None:
            query += " AND treatment_type = %s"
            params.append(treatment_type)
        query += " ORDER BY timestamp DESC, id DESC LIMIT %s"
        params.append(limit)

        with self.get_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall()

        return [
            TrainingSample(
                weather_conditions=dict(row['weather_data']),
                treatment_type=row['treatment_type'],
                effectiveness=int(row['effectiveness']),
                timestamp=row['timestamp'],
                data_quality=float(row['data_quality']),
                confidence=float(row['confidence']),
            )
            for row in rows
        ]
