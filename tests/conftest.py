"""Shared fixtures: a mock logger and an in-memory chain store."""

import threading
import pytest
from unittest.mock import MagicMock


class InMemoryChainStore:
    """Thread-safe stand-in for ChainStorePostgreSqlAdapter."""

    def __init__(self):
        self.texts = []
        self.edges = {}
        self._lock = threading.Lock()

    def record_text(self, content):
        with self._lock:
            self.texts.append(content)

    def increment_edge(self, from_token, to_token):
        with self._lock:
            key = (from_token, to_token)
            self.edges[key] = self.edges.get(key, 0) + 1

    def edges_from(self, from_token):
        with self._lock:
            return [(to_token, count) for (source, to_token), count in self.edges.items()
                    if source == from_token]

    def length_stats(self):
        with self._lock:
            if not self.texts:
                return None, None
            lengths = [len(text) for text in self.texts]
        mean = sum(lengths) / len(lengths)
        variance = sum((length - mean) ** 2 for length in lengths) / len(lengths)
        return float(mean), variance ** 0.5


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing"""
    logger = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    return logger


@pytest.fixture
def chain_store():
    """An empty in-memory chain store"""
    return InMemoryChainStore()
