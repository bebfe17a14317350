#!/usr/bin/env python3
import logging
import os
import sys
import time
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from monte_carlo import MILLION, RandomSampler, Reporter, SampleCounters, Worker, approximate

logger = logging.getLogger(__name__)

MAX_WORKERS = 1000
DEFAULT_BATCH_SIZE = 10000
LOG_LEVEL_VARIABLE = "MONTE_PI_LOG_LEVEL"
USAGE = "Usage: monte-pi <workers> <samples> [seed]"

SimulationResult = namedtuple(
    "SimulationResult", ["total", "inside", "approximation", "reports", "elapsed"]
)


class MonteCarloError(Exception):
    """Base class of all errors raised while setting up or running a simulation"""


class ConfigurationError(MonteCarloError):
    """Invalid or missing configuration

    Bases: MonteCarloError"""


class TaskStartError(MonteCarloError):
    """A worker or reporter thread could not be started

    Bases: MonteCarloError"""

    def __init__(self, index, reason):
        super().__init__(f"Error creating thread {index}: {reason}")
        self.index = index


class Configuration(BaseModel):
    model_config = ConfigDict(frozen=True)

    worker_count: int = Field(ge=1, le=MAX_WORKERS)
    target_sample_count: int = Field(gt=0)
    report_interval: int = Field(default=MILLION, gt=0)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1, validate_default=True)
    seed: Optional[int] = Field(default=None, ge=0)

    @field_validator("batch_size")
    @classmethod
    def batch_within_interval(cls, value: int, info) -> int:
        # keeps each report close to the boundary that triggered it
        interval = info.data.get("report_interval")
        if interval is not None and value > interval:
            raise ValueError(
                f"batch size {value} exceeds the report interval {interval}"
            )
        return value

    @classmethod
    def create(cls, **values) -> "Configuration":
        try:
            return cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )
            raise ConfigurationError(problems) from e


def parse_args(args: List[str]) -> Configuration:
    if len(args) not in (2, 3):
        raise ConfigurationError(USAGE)
    try:
        values = [int(arg) for arg in args]
    except ValueError:
        raise ConfigurationError(
            f"Arguments must be integers, got {' '.join(args)!r}"
        ) from None

    config = {"worker_count": values[0], "target_sample_count": values[1]}
    if len(values) == 3:
        config["seed"] = values[2]
    return Configuration.create(**config)


def configure_logging(level=None):
    if level is None:
        level = os.environ.get(LOG_LEVEL_VARIABLE, "WARNING")
    if isinstance(level, str):
        level = level.upper()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s; %(name)s; %(levelname)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    for name in ("monte_pi", "monte_carlo"):
        log = logging.getLogger(name)
        log.handlers = [handler]
        log.propagate = False
        try:
            log.setLevel(level)
        except ValueError:
            raise ConfigurationError(
                f"Unknown log level {level!r} in {LOG_LEVEL_VARIABLE}"
            ) from None


def run_simulation(config: Configuration, stream=None, executor_class=ThreadPoolExecutor):
    counters = SampleCounters(config.target_sample_count, config.report_interval)
    samplers = RandomSampler.spawn(config.worker_count, config.seed)
    workers = [
        Worker(i, counters, samplers[i], config.batch_size)
        for i in range(config.worker_count)
    ]
    reporter = Reporter(counters, stream)

    logger.info(
        "Starting %d workers for %d samples",
        config.worker_count,
        config.target_sample_count,
    )
    start_time = time.time()

    # the reporter is task number worker_count
    tasks = [(config.worker_count, reporter.run)]
    tasks.extend((worker.index, worker.run) for worker in workers)

    with executor_class(max_workers=config.worker_count + 1) as executor:
        futures = []
        for index, task in tasks:
            try:
                futures.append(executor.submit(task))
            except RuntimeError as e:
                counters.abort()
                raise TaskStartError(index, e) from e

        for future in futures:
            future.result()

    elapsed = time.time() - start_time
    logger.info("Simulation took %.2fms", elapsed * 1000)

    total, inside = counters.snapshot()
    return SimulationResult(
        total, inside, approximate(inside, total), reporter.reports, elapsed
    )


def main(args: Optional[List[str]] = None) -> int:
    if args is None:
        args = sys.argv[1:]

    try:
        configure_logging()
        config = parse_args(args)
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        print(USAGE, file=sys.stderr)
        return 2

    try:
        run_simulation(config)
    except TaskStartError as e:
        logger.error("%s", e)
        return 1
    except OSError as e:
        logger.error("Could not write the approximation: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
