#!/usr/bin/env python3
"""
Chain learner: turns submitted texts into transition count increments.

A text is recorded once, split on single spaces, and every derived
(previous, current) pair is sent to the chain store as an independent atomic
increment. The increments of one text run concurrently on a thread pool and
are all allowed to finish before any failure is reported.
"""

import time
import concurrent.futures
from concurrent.futures import ThreadPoolExecutor

from models.chain.errors import ChainError, StorageError

START_TOKEN = ""


def derive_edges(text):
    """
    Derive the transitions learned from one trimmed text.

    The start edge ("", first token) is always derived. Transitions are derived
    between consecutive tokens except the one leading into the final token,
    which is never learned.

    Args:
        text (str): A non-empty, trimmed text

    Returns:
        list: (from_token, to_token) tuples in derivation order
    """
    parts = text.split(" ")
    edges = [(START_TOKEN, parts[0])]

    for i in range(1, len(parts) - 1):
        edges.append((parts[i - 1], parts[i]))

    return edges


class ChainLearner:
    """
    Records texts and increments their transition counts in a chain store.

    The learner owns a ThreadPoolExecutor shared by all ingest calls; call
    close() to shut it down.
    """

    def __init__(self, chain_store, logger=None, max_workers=8):
        """
        Args:
            chain_store: Object providing record_text() and increment_edge()
            logger (Logger, required): Logger instance for ingestion activity
            max_workers (int): Threads used to apply edge increments
        """
        if logger is None:
            raise ValueError("Logger instance must be provided")

        self.chain_store = chain_store
        self.logger = logger
        self.max_workers = max_workers
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="chain-learner")

    def ingest(self, text):
        """
        Learn from one text.

        Args:
            text (str): Raw input; surrounding whitespace is ignored

        Raises:
            StorageError: The first failed write, in derivation order. Writes
                that succeeded are kept.
        """
        text = text.strip()
        if not text:
            return

        start_time = time.time()
        self.chain_store.record_text(text)

        edges = derive_edges(text)
        futures = [
            self.executor.submit(self._apply_edge, from_token, to_token)
            for from_token, to_token in edges
        ]

        # Let every increment finish before looking at any result
        concurrent.futures.wait(futures)

        errors = [future.exception() for future in futures]
        failed = [error for error in errors if error is not None]

        self.logger.info("Text ingested", extra={
            "metrics": {
                "text_length": len(text),
                "edges": len(edges),
                "failed_edges": len(failed),
                "ingest_time": time.time() - start_time,
            }
        })

        if failed:
            first = failed[0]
            if isinstance(first, ChainError):
                raise first
            raise StorageError(f"Edge increment failed: {first}") from first

    def _apply_edge(self, from_token, to_token):
        from_token = from_token.strip()
        to_token = to_token.strip()

        if not to_token:
            return

        self.chain_store.increment_edge(from_token, to_token)

    def close(self):
        """Wait for running increments and stop the worker threads."""
        self.executor.shutdown(wait=True)
