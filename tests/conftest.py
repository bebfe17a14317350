import logging

import numpy as np
import pytest


class FixedSampler:
    """Replays the given points forever, in order"""

    def __init__(self, points):
        self.points = np.asarray(points, dtype=float)
        self.position = 0

    def next_coordinate_pair(self):
        x, y = self.points[self.position % len(self.points)]
        self.position += 1
        return float(x), float(y)

    def next_block(self, size):
        indices = (self.position + np.arange(size)) % len(self.points)
        self.position += size
        return self.points[indices]


@pytest.fixture()
def fixed_sampler():
    return FixedSampler


@pytest.fixture(autouse=True)
def reset_loggers():
    yield
    for name in ("monte_pi", "monte_carlo"):
        log = logging.getLogger(name)
        log.handlers = []
        log.propagate = True
        log.setLevel(logging.NOTSET)
