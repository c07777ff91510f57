"""
Simulation worker: one seeded Monte Carlo run for one distribution.

A worker owns the iteration matrix of its batch for the duration of the run:

    for i in 1..iterations:
        for y in 1..years:
            matrix[i, y] = sample(rng, {year: y, previous: matrix[i, y-1]})

Its random stream is derived solely from ``(seed, batch_index)`` through
``numpy.random.SeedSequence``, so a batch draws the same values whichever
thread or process runs it, and in whatever order batches are scheduled.

Numeric failures (NaN/Inf or arithmetic errors from pathological parameters)
are caught per draw: the iteration is marked failed and excluded from
aggregation, and the run carries on. A run where every iteration fails, or
whose failure rate exceeds ``max_failure_rate``, raises ``NumericError``.

Lifecycle::

    UNINITIALIZED --initialize(seed)--> SEEDED --process()--> PROCESSED
"""

import enum
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Type

import numpy as np
from numpy.typing import NDArray

from src.distributions.base import Distribution, SampleContext
from src.errors import NumericError, SimulationTimeoutError, StateError

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Cooperative cancellation signal with an optional deadline.

    Shared by the engine and its workers; workers poll it once per iteration.
    A token with a ``parent`` is also cancelled when the parent is.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        parent: Optional["CancellationToken"] = None,
    ) -> None:
        if timeout is not None and timeout < 0:
            raise ValueError(f"timeout must be non-negative. Got {timeout}")
        self._event = threading.Event()
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        if self._parent is not None and self._parent.cancelled:
            self._event.set()
            return True
        return False

    def remaining(self) -> Optional[float]:
        """Seconds left before the nearest deadline (None if there is none)."""
        own = None if self._deadline is None else max(0.0, self._deadline - time.monotonic())
        inherited = self._parent.remaining() if self._parent is not None else None
        if own is None:
            return inherited
        if inherited is None:
            return own
        return min(own, inherited)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise SimulationTimeoutError("Simulation cancelled or timed out before completion")


@dataclass
class IterationMatrix:
    """
    Raw samples of one run.

    Attributes
    ----------
    values : NDArray[np.float64]
        Samples, shape (iterations, years). Rows of failed iterations hold NaN
        from the failing year on.
    failed : NDArray[np.bool_]
        Failure mask, shape (iterations,).
    """

    values: NDArray[np.float64]
    failed: NDArray[np.bool_]

    @property
    def iterations(self) -> int:
        return int(self.values.shape[0])

    @property
    def years(self) -> int:
        return int(self.values.shape[1])

    @property
    def failure_count(self) -> int:
        return int(np.count_nonzero(self.failed))

    @property
    def failure_rate(self) -> float:
        return self.failure_count / self.iterations if self.iterations else 0.0

    def valid_rows(self) -> NDArray[np.float64]:
        """Samples of successful iterations only, shape (n_valid, years)."""
        return self.values[~self.failed]

    @classmethod
    def concatenate(cls, parts: Sequence["IterationMatrix"]) -> "IterationMatrix":
        """Merge batch matrices in the given (batch) order."""
        if not parts:
            raise ValueError("Cannot concatenate an empty list of matrices")
        return cls(
            values=np.concatenate([part.values for part in parts], axis=0),
            failed=np.concatenate([part.failed for part in parts]),
        )


def check_failure_rate(
    matrix: IterationMatrix,
    max_failure_rate: float,
    last_error: Optional[str] = None,
) -> None:
    """
    Raises
    ------
    NumericError
        If every iteration failed or the failure rate exceeds ``max_failure_rate``.
    """
    if matrix.failure_count == 0:
        return
    if matrix.failure_count == matrix.iterations or matrix.failure_rate > max_failure_rate:
        detail = f" (last error: {last_error})" if last_error else ""
        raise NumericError(
            f"{matrix.failure_count} of {matrix.iterations} iterations produced non-finite "
            f"values, exceeding the tolerated failure rate of {max_failure_rate:.0%}{detail}"
        )


class WorkerState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    SEEDED = "seeded"
    PROCESSED = "processed"


class SimulationWorker:
    """
    Runs ``iterations`` Monte Carlo paths of ``years`` draws each.

    Attributes
    ----------
    distribution : Distribution
        Validated distribution instance (stateless, may be shared).
    iterations : int
        Number of paths in this batch.
    years : int
        Horizon length.
    batch_index : int
        Index of this batch; part of the random stream key.
    max_failure_rate : float, optional
        Highest tolerated fraction of failed iterations. None disables the
        check, for batches whose caller checks the merged matrix instead.
    state : WorkerState
        Lifecycle state.
    """

    def __init__(
        self,
        distribution: Distribution,
        iterations: int,
        years: int,
        batch_index: int = 0,
        max_failure_rate: Optional[float] = 0.5,
    ) -> None:
        if iterations <= 0 or years <= 0:
            raise ValueError(
                f"iterations and years must be positive. Got iterations={iterations}, years={years}"
            )
        if batch_index < 0:
            raise ValueError(f"batch_index must be non-negative. Got {batch_index}")
        if max_failure_rate is not None and not (0.0 <= max_failure_rate <= 1.0):
            raise ValueError(f"max_failure_rate must be in [0, 1]. Got {max_failure_rate}")

        self.distribution = distribution
        self.iterations = iterations
        self.years = years
        self.batch_index = batch_index
        self.max_failure_rate = max_failure_rate
        self.state = WorkerState.UNINITIALIZED
        self.seed: Optional[int] = None
        self.last_error: Optional[str] = None
        self._rng: Optional[np.random.Generator] = None

    def initialize(self, seed: int) -> None:
        """
        Seed the worker's random stream from ``(seed, batch_index)``.

        Raises
        ------
        StateError
            If the worker has already processed its batch.
        ValueError
            If ``seed`` is negative.
        """
        if self.state is WorkerState.PROCESSED:
            raise StateError("Worker has already processed its batch; create a new worker")
        if seed < 0:
            raise ValueError(f"seed must be non-negative. Got {seed}")

        self.seed = int(seed)
        self._rng = np.random.default_rng(np.random.SeedSequence([self.seed, self.batch_index]))
        self.state = WorkerState.SEEDED

    def process(self, cancel_token: Optional[CancellationToken] = None) -> IterationMatrix:
        """
        Run the batch.

        Parameters
        ----------
        cancel_token : CancellationToken, optional
            Polled once per iteration.

        Returns
        -------
        IterationMatrix
            Samples and failure mask for this batch.

        Raises
        ------
        StateError
            If called before ``initialize`` (or twice).
        NumericError
            If every iteration fails or the failure rate exceeds the threshold.
        SimulationTimeoutError
            If the token is cancelled mid-run; partial samples are discarded.
        """
        if self.state is not WorkerState.SEEDED:
            raise StateError(
                f"Worker must be initialized before processing (state: {self.state.value})"
            )

        rng = self._rng
        values = np.full((self.iterations, self.years), np.nan)
        failed = np.zeros(self.iterations, dtype=bool)
        last_error = None

        for i in range(self.iterations):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            previous = None
            for y in range(self.years):
                context = SampleContext(year=y + 1, previous=previous, iteration=i)
                try:
                    value = float(self.distribution.sample(rng, context))
                except (ArithmeticError, ValueError) as e:
                    value = math.nan
                    last_error = f"{type(e).__name__}: {e}"

                if not math.isfinite(value):
                    failed[i] = True
                    break
                values[i, y] = value
                previous = value

        self.state = WorkerState.PROCESSED
        matrix = IterationMatrix(values=values, failed=failed)

        if matrix.failure_count:
            logger.warning(
                f"Batch {self.batch_index}: {matrix.failure_count}/{self.iterations} iterations "
                f"produced non-finite values and were excluded"
            )
        if self.max_failure_rate is not None:
            check_failure_rate(matrix, self.max_failure_rate, last_error)
        self.last_error = last_error

        return matrix

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"SimulationWorker(distribution={type(self.distribution).__name__}, "
            f"iterations={self.iterations}, years={self.years}, "
            f"batch_index={self.batch_index}, state={self.state.value})"
        )


def run_batch(
    implementation: Type[Distribution],
    parameters: dict,
    iterations: int,
    years: int,
    seed: int,
    batch_index: int,
    max_failure_rate: Optional[float] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> IterationMatrix:
    """
    Build, seed and run one worker.

    Module-level so it can be submitted to a process pool: every argument is
    picklable when ``cancel_token`` is None.
    """
    worker = SimulationWorker(
        implementation(parameters),
        iterations=iterations,
        years=years,
        batch_index=batch_index,
        max_failure_rate=max_failure_rate,
    )
    worker.initialize(seed)
    return worker.process(cancel_token)
