"""Probabilistic report sampling."""

import random
from collections.abc import Callable


class Sampler:
    """Admission gate keeping each report with a fixed probability.

    Args:
        sampling: Keep-probability in [0, 1]; None admits every report.
        random_source: Returns a uniform float in [0, 1).

    Raises:
        ValueError: If sampling lies outside [0, 1].
    """

    def __init__(
        self,
        sampling: float | None = None,
        random_source: Callable[[], float] = random.random,
    ) -> None:
        if sampling is not None and not 0 <= sampling <= 1:
            raise ValueError("sampling must be between 0 and 1")
        self._sampling = sampling
        self._random = random_source

    @property
    def sampling(self) -> float | None:
        return self._sampling

    def is_hit(self) -> bool:
        """Return True if the current report should be dropped."""
        if self._sampling is None:
            return False
        if self._sampling == 0:
            return True
        return self._random() > self._sampling
