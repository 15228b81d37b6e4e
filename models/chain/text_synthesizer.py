#!/usr/bin/env python3
"""
Text synthesizer: generates text from the stored chain.
"""

import time

from models.chain.length_estimator import LengthEstimator
from models.chain.weighted_sampler import WeightedSampler


class TextSynthesizer:
    """
    Combines the length estimator and the weighted sampler.

    A caller may pass a seed text to continue and an explicit target length;
    without a length one is drawn from the recorded text lengths.
    """

    def __init__(self, chain_store, logger=None, length_estimator=None, sampler=None):
        """
        Args:
            chain_store: Object providing edges_from() and length_stats()
            logger (Logger, required): Logger instance for generation activity
            length_estimator (LengthEstimator, optional): Overrides the default estimator
            sampler (WeightedSampler, optional): Overrides the default sampler
        """
        if logger is None:
            raise ValueError("Logger instance must be provided")

        self.logger = logger
        self.length_estimator = length_estimator or LengthEstimator(chain_store, logger=logger)
        self.sampler = sampler or WeightedSampler(chain_store, logger=logger)

    def generate(self, seed=None, max_length=None):
        """
        Generate a text.

        Args:
            seed (str, optional): Text to continue; its last token starts the walk
                and the output begins with the trimmed seed
            max_length (int, optional): Target length of the generated
                continuation in characters

        Returns:
            str: The seed (if any) followed by the generated tokens

        Raises:
            EstimationError: If no length was given and none can be estimated
            SamplingError: If the stored weights are corrupt
            StorageError: If the chain store failed
        """
        start_time = time.time()

        target_length = max_length
        if target_length is None:
            target_length = self.length_estimator.estimate_length()

        prefix = seed.strip() if seed else ""
        last_word = prefix.split(" ")[-1] if prefix else ""

        generated = self.sampler.walk(last_word, target_length)
        text = " ".join(part for part in (prefix, generated) if part)

        self.logger.info("Text generated", extra={
            "metrics": {
                "seeded": bool(prefix),
                "target_length": target_length,
                "length": len(text),
                "generation_time": time.time() - start_time,
            }
        })
        return text
