#!/usr/bin/env python3
"""
Length estimator: picks how long a generated text should be.

Text lengths are modelled as log-normal. The distribution is fit by the method
of moments from the mean and population standard deviation of every recorded
text, so no individual text is ever read back.
"""

import math
import numpy as np

from models.chain.errors import EstimationError


def fit_log_normal(mean, stddev):
    """
    Fit log-normal parameters to a mean and standard deviation.

    Uses the coefficient of variation cv = stddev / mean:
    sigma^2 = ln(1 + cv^2) and mu = ln(mean) - sigma^2 / 2.

    Args:
        mean (float): Arithmetic mean of the lengths
        stddev (float): Population standard deviation of the lengths

    Returns:
        tuple: (mu, sigma) of the underlying normal distribution

    Raises:
        EstimationError: If the moments are missing or cannot describe a
            log-normal distribution
    """
    if mean is None or stddev is None:
        raise EstimationError(
            "No texts have been recorded; ingest text first or pass an explicit length")

    if not math.isfinite(mean) or mean <= 0:
        raise EstimationError(
            f"Cannot fit a length distribution to mean {mean}; pass an explicit length")

    cv = stddev / mean
    if not math.isfinite(cv) or cv < 0:
        raise EstimationError(
            f"Invalid coefficient of variation {cv}; pass an explicit length")

    sigma_squared = math.log1p(cv * cv)
    mu = math.log(mean) - sigma_squared / 2
    return mu, math.sqrt(sigma_squared)


class LengthEstimator:
    """Samples target lengths from the recorded length distribution."""

    def __init__(self, chain_store, rng=None, logger=None):
        """
        Args:
            chain_store: Object providing length_stats()
            rng (numpy.random.Generator, optional): Random source
            logger: Logger instance
        """
        self.chain_store = chain_store
        self.rng = rng if rng is not None else np.random.default_rng()
        self.logger = logger

    def estimate_length(self):
        """
        Draw one target length in characters.

        Returns:
            int: A non-negative length

        Raises:
            EstimationError: If no texts exist or the fit is degenerate
            StorageError: If the statistics could not be read
        """
        mean, stddev = self.chain_store.length_stats()
        mu, sigma = fit_log_normal(mean, stddev)

        sample = float(self.rng.lognormal(mean=mu, sigma=sigma))
        # Round half away from zero; samples are never negative
        length = int(math.floor(sample + 0.5))

        if self.logger:
            self.logger.debug("Target length estimated", extra={
                "metrics": {
                    "mean": mean,
                    "stddev": stddev,
                    "sample": sample,
                    "length": length,
                }
            })
        return length
