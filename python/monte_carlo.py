import logging
import sys
import threading
from collections import namedtuple

import numpy as np

logger = logging.getLogger(__name__)

CENTER = 0.5
RADIUS_SQUARED = 0.25
MILLION = 1000000

REPORT_FORMAT = "The current approximation of pi is {:.6f}."

Report = namedtuple("Report", ["total", "inside", "approximation"])


def classify(x, y):
    """True where (x, y) lies inside or on the circle of radius 0.5 around (0.5, 0.5).

    Works element-wise on numpy arrays as well as on plain floats.
    """
    return (x - CENTER) ** 2 + (y - CENTER) ** 2 <= RADIUS_SQUARED


def approximate(inside, total):
    return inside / total * 4.0


# One generator per worker; streams spawned from a common root are independent
class RandomSampler:
    def __init__(self, seed=None):
        self.rng = np.random.default_rng(seed)

    @classmethod
    def spawn(cls, count, seed=None):
        root = np.random.SeedSequence(seed)
        return [cls(child) for child in root.spawn(count)]

    def next_coordinate_pair(self):
        x, y = self.rng.random(2)
        return float(x), float(y)

    def next_block(self, size):
        return self.rng.random((size, 2))


class SampleCounters:
    """Shared totals of a run, guarded by a single lock.

    The lock also backs the condition variable the reporter sleeps on, so the
    termination check and the interval check are made in the same critical
    section as the increment that triggers them. Triggers are counted rather
    than flagged, so a notification fired while the reporter is busy is handled
    on its next pass instead of being lost.
    """

    def __init__(self, target, interval=MILLION):
        if target <= 0:
            raise ValueError(f"target must be positive, got {target}")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.target = target
        self.interval = interval
        self._lock = threading.Lock()
        self._condition = threading.Condition(self._lock)
        self._total = 0
        self._inside = 0
        self._done = False
        self._pending = 0

    @property
    def done(self):
        with self._lock:
            return self._done

    def snapshot(self):
        with self._lock:
            return self._total, self._inside

    def record(self, inside):
        """Counts a block of classified samples and returns how many were accepted.

        Samples beyond the target are discarded, so the final total is exactly
        ``target`` however many workers race for the last slots.
        """
        inside = np.asarray(inside, dtype=bool).reshape(-1)
        with self._condition:
            if self._done:
                return 0
            accepted = min(len(inside), self.target - self._total)
            previous = self._total
            self._total += accepted
            self._inside += int(np.count_nonzero(inside[:accepted]))

            crossed = self._total // self.interval - previous // self.interval
            if self._total == self.target:
                self._done = True
                # an interval-aligned target reports once
                if self._total % self.interval == 0:
                    crossed -= 1
                self._trigger(crossed + 1)
            elif crossed:
                self._trigger(crossed)
        return accepted

    def abort(self):
        """Stops all workers without a final report."""
        with self._condition:
            self._done = True
            self._condition.notify_all()

    def wait_for_report(self):
        """Blocks until a report is due.

        Returns the ``(total, inside)`` pair to report, or None once the run is
        over and every trigger has been handled. The pair is read when the
        trigger is consumed, so a reporter that falls behind sees the same
        totals for several triggers.
        """
        with self._condition:
            self._condition.wait_for(lambda: self._pending > 0 or self._done)
            if self._pending == 0:
                return None
            self._pending -= 1
            return self._total, self._inside

    def _trigger(self, count=1):
        self._pending += count
        self._condition.notify_all()


class Worker:
    def __init__(self, index, counters, sampler, batch_size=1):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.index = index
        self.counters = counters
        self.sampler = sampler
        self.batch_size = batch_size
        self.samples = 0

    def run(self):
        logger.debug("Worker %d started", self.index)
        try:
            while not self.counters.done:
                block = self.sampler.next_block(self.batch_size)
                self.samples += self.counters.record(classify(block[:, 0], block[:, 1]))
        except Exception:
            # let the others and the reporter wind down before propagating
            self.counters.abort()
            raise
        logger.debug("Worker %d finished after %d samples", self.index, self.samples)
        return self.samples


class Reporter:
    def __init__(self, counters, stream=None):
        self.counters = counters
        self.stream = stream
        self.reports = []

    def run(self):
        logger.debug("Reporter started")
        try:
            while True:
                snapshot = self.counters.wait_for_report()
                if snapshot is None:
                    break
                total, inside = snapshot
                report = Report(total, inside, approximate(inside, total))
                self.emit(report)
                self.reports.append(report)
        except Exception:
            # nobody is left to report, stop the workers
            self.counters.abort()
            raise
        logger.debug("Reporter finished after %d reports", len(self.reports))
        return self.reports

    def emit(self, report):
        stream = self.stream if self.stream is not None else sys.stdout
        print(REPORT_FORMAT.format(report.approximation), file=stream, flush=True)
