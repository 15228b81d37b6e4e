#!/usr/bin/env python3
"""
Weighted sampler: random walk over the stored chain.
"""

import random

from models.chain.errors import SamplingError


class WeightedSampler:
    """
    Walks the chain from a token, choosing each next token in proportion to
    how often the transition was observed.
    """

    def __init__(self, chain_store, rng=None, logger=None):
        """
        Args:
            chain_store: Object providing edges_from()
            rng (random.Random, optional): Random source; pass a seeded
                instance for reproducible walks
            logger: Logger instance
        """
        self.chain_store = chain_store
        self.rng = rng if rng is not None else random.Random()
        self.logger = logger

    def choose(self, candidates):
        """
        Pick one candidate by weighted random choice.

        Draws r from [0, total] and subtracts weights in listed order until the
        remainder drops to zero or below.

        Args:
            candidates (list): (token, count) tuples

        Returns:
            str: The chosen token

        Raises:
            SamplingError: If the weights sum to zero or less, or no candidate
                could be selected
        """
        total = sum(count for _, count in candidates)
        if total <= 0:
            raise SamplingError(
                f"Cannot choose among {len(candidates)} candidates with total weight {total}")

        remainder = self.rng.randint(0, total)
        for token, count in candidates:
            remainder -= count
            if remainder <= 0:
                return token

        raise SamplingError("Failed to choose a weighted candidate")

    def walk(self, seed_last_token, target_length):
        """
        Generate tokens until `target_length` characters or a dead end.

        Args:
            seed_last_token (str): Token to continue from; "" starts a new text
            target_length (int): Minimum length of the generated text; the last
                token may overshoot it

        Returns:
            str: Space-joined generated tokens, possibly empty
        """
        last_word = seed_last_token.strip()
        words = []
        length = 0

        while length < target_length:
            candidates = self.chain_store.edges_from(last_word)
            if not candidates:
                break

            word = self.choose(candidates)
            # One separating space before every token but the first
            length += len(word) + (1 if words else 0)
            words.append(word)
            last_word = word

        if self.logger:
            self.logger.debug("Walk finished", extra={
                "metrics": {
                    "target_length": target_length,
                    "length": length,
                    "tokens": len(words),
                    "dead_end": length < target_length,
                }
            })

        return " ".join(words)
