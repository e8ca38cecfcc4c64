import random
import secrets


class RandomSource:
    """
    Injectable source of randomness for grid and bonus board generation.

    Wraps any object exposing ``random()`` and ``randrange()`` (``secrets.SystemRandom``
    in production, a seeded ``random.Random`` in tests).
    """

    def __init__(self, generator=None):
        self._generator = generator if generator is not None else secrets.SystemRandom()

    @classmethod
    def seeded(cls, seed):
        return cls(random.Random(seed))

    def uniform(self, upper: float) -> float:
        """Uniform draw in [0, upper)."""
        return self._generator.random() * upper

    def randrange(self, stop: int) -> int:
        """Uniform integer draw in [0, stop)."""
        return self._generator.randrange(stop)
