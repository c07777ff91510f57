"""
Monte Carlo engine: the single externally callable fault boundary.

``simulate_distribution`` merges caller settings with the engine defaults,
resolves and echoes the seed, validates the distribution parameters, runs the
iterations in fixed-size batches (serially or on a thread/process pool),
merges them and aggregates percentiles per year. Whatever happens, the caller
receives the response envelope::

    {
        "success": bool,
        "simulationInfo": [{
            "distribution": str, "iterations": int, "seed": int, "years": int,
            "timeElapsed": float (ms), "results": [...], "errors": [str, ...],
        }],
    }

Batches are keyed by ``(seed, batch_index)`` and their size comes from
configuration, never from the pool size, so results are identical for any
``MAX_WORKERS`` and any scheduling order.
"""

import asyncio
import functools
import logging
import secrets
import time
import zlib
from concurrent.futures import (
    Executor,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    TimeoutError as FuturesTimeoutError,
    as_completed,
)
from typing import Any, Dict, List, Mapping, Optional, Type, Union

import numpy as np

from src.config import Settings, settings as default_config
from src.distributions.base import Distribution
from src.distributions.registry import DistributionRegistry, get_default_registry
from src.errors import SimulationError, SimulationTimeoutError, ValidationError
from src.simulation.aggregation import aggregate_by_year
from src.simulation.settings import DistributionConfig, SimulationSettings
from src.simulation.worker import (
    CancellationToken,
    IterationMatrix,
    SimulationWorker,
    check_failure_rate,
    run_batch,
)

logger = logging.getLogger(__name__)

SettingsInput = Optional[Union[Mapping[str, Any], SimulationSettings]]


def split_batches(iterations: int, batch_size: int) -> List[int]:
    """Sizes of consecutive batches covering ``iterations``."""
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive. Got {batch_size}")
    full, rest = divmod(iterations, batch_size)
    return [batch_size] * full + ([rest] if rest else [])


def derive_seed(seed: int, key: str) -> int:
    """Independent, reproducible seed for ``key`` under a base ``seed``."""
    sequence = np.random.SeedSequence([seed, zlib.crc32(key.encode("utf-8"))])
    return int(sequence.generate_state(1)[0])


class MonteCarloEngine:
    """
    Reusable simulation entry point.

    Carries default settings, the registry it resolves types from and the
    runtime configuration. Holds no per-run state, so one engine can serve
    concurrent calls.

    Attributes
    ----------
    defaults : SimulationSettings
        Settings used for every key the caller leaves out.
    registry : DistributionRegistry
        Type resolution table.
    config : Settings
        Runtime configuration (batching, pool, failure tolerance, timeout).
    """

    def __init__(
        self,
        defaults: SettingsInput = None,
        registry: Optional[DistributionRegistry] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.config = config if config is not None else default_config
        base = SimulationSettings(
            iterations=self.config.DEFAULT_ITERATIONS,
            years=self.config.DEFAULT_YEARS,
        )
        self.defaults = SimulationSettings.from_mapping(defaults, base)
        self.registry = registry if registry is not None else get_default_registry()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def simulate_distribution(
        self,
        distribution_config: Any,
        simulation_settings: SettingsInput = None,
        cancel_token: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Run one Monte Carlo simulation. Never raises.

        Parameters
        ----------
        distribution_config : Mapping or DistributionConfig
            ``{"type": str, "parameters": {...}}``.
        simulation_settings : Mapping or SimulationSettings, optional
            Any of ``iterations``, ``years``, ``percentiles``, ``seed``.
        cancel_token : CancellationToken, optional
            External cancellation signal.
        timeout : float, optional
            Seconds before the run is abandoned (defaults to ``TIMEOUT_SECONDS``).

        Returns
        -------
        Dict[str, Any]
            Response envelope with exactly one ``simulationInfo`` entry.
        """
        info = self._initial_info(distribution_config, simulation_settings)
        started = time.perf_counter()

        try:
            config = DistributionConfig.from_mapping(distribution_config)
            info["distribution"] = config.type

            run_settings = SimulationSettings.from_mapping(simulation_settings, self.defaults)
            if run_settings.seed is None:
                run_settings = run_settings.with_seed(secrets.randbelow(self.config.MAX_SEED))
            info.update(
                iterations=run_settings.iterations,
                seed=run_settings.seed,
                years=run_settings.years,
            )

            implementation = self.registry.resolve(config.type)
            validation = implementation.validate(config.parameters)
            if not validation.is_valid:
                logger.warning(
                    f"Rejected {config.type} parameters: {'; '.join(validation.errors)}"
                )
                info["errors"] = list(validation.errors)
                return self._envelope(info)

            if run_settings.iterations < self.config.MIN_RECOMMENDED_ITERATIONS:
                logger.warning(
                    f"{run_settings.iterations} iterations is below the recommended minimum of "
                    f"{self.config.MIN_RECOMMENDED_ITERATIONS}; percentiles may be unstable"
                )

            logger.info(
                f"Simulating {config.type}: {run_settings.iterations} iterations x "
                f"{run_settings.years} years (seed {run_settings.seed})"
            )
            effective_timeout = timeout if timeout is not None else self.config.TIMEOUT_SECONDS
            token = CancellationToken(effective_timeout, parent=cancel_token)

            distribution = implementation(config.parameters)
            matrix = self._run_batches(implementation, distribution, config, run_settings, token)
            check_failure_rate(matrix, self.config.MAX_FAILURE_RATE)

            info["results"] = aggregate_by_year(matrix, run_settings.percentiles, distribution)
            info["timeElapsed"] = self._elapsed_ms(started)
            logger.info(
                f"Simulation of {config.type} finished in {info['timeElapsed']:.1f} ms "
                f"({matrix.failure_count} failed iterations)"
            )
        except ValidationError as e:
            logger.error(f"Simulation rejected: {e}")
            self._fail(info, e.errors, started)
        except SimulationError as e:
            logger.error(f"Simulation failed: {e}")
            self._fail(info, [str(e)], started)
        except Exception as e:
            logger.exception(f"Unexpected error during simulation: {e}")
            self._fail(info, [str(e) or type(e).__name__], started)

        return self._envelope(info)

    async def simulate_distribution_async(
        self,
        distribution_config: Any,
        simulation_settings: SettingsInput = None,
        cancel_token: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
        executor: Optional[Executor] = None,
    ) -> Dict[str, Any]:
        """
        Suspending form of ``simulate_distribution``.

        The simulation runs on ``executor`` (the loop's default if None).
        Cancelling the awaiting task cancels the run.
        """
        loop = asyncio.get_running_loop()
        token = CancellationToken(parent=cancel_token)
        call = functools.partial(
            self.simulate_distribution,
            distribution_config,
            simulation_settings,
            token,
            timeout,
        )
        try:
            return await loop.run_in_executor(executor, call)
        except asyncio.CancelledError:
            token.cancel()
            raise

    def simulate_batch(
        self,
        distribution_configs: Mapping[str, Any],
        simulation_settings: SettingsInput = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Simulate several named distributions with shared settings.

        Each id gets its own seed derived from the base seed and the id, so
        adding or removing an entry leaves the others unchanged.

        Returns
        -------
        Dict[str, Dict[str, Any]]
            One response envelope per id, in input order.

        Raises
        ------
        ValidationError
            If ``distribution_configs`` is not a mapping.
        """
        if not isinstance(distribution_configs, Mapping):
            raise ValidationError(
                "Distribution configurations must be a mapping from id to configuration. "
                f"Got {type(distribution_configs).__name__}"
            )
        try:
            base = SimulationSettings.from_mapping(simulation_settings, self.defaults)
        except SimulationError:
            # Every entry reports the same settings error
            return {
                key: self.simulate_distribution(config, simulation_settings, cancel_token)
                for key, config in distribution_configs.items()
            }

        seed = base.seed if base.seed is not None else secrets.randbelow(self.config.MAX_SEED)
        logger.info(f"Batch simulation of {len(distribution_configs)} distributions (seed {seed})")
        return {
            key: self.simulate_distribution(
                config, base.with_seed(derive_seed(seed, str(key))), cancel_token
            )
            for key, config in distribution_configs.items()
        }

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def _run_batches(
        self,
        implementation: Type[Distribution],
        distribution: Distribution,
        config: DistributionConfig,
        run_settings: SimulationSettings,
        token: CancellationToken,
    ) -> IterationMatrix:
        sizes = split_batches(run_settings.iterations, self.config.BATCH_SIZE)
        if self.config.MAX_WORKERS <= 1 or len(sizes) == 1:
            parts = []
            for index, size in enumerate(sizes):
                token.raise_if_cancelled()
                worker = SimulationWorker(
                    distribution,
                    iterations=size,
                    years=run_settings.years,
                    batch_index=index,
                    max_failure_rate=None,
                )
                worker.initialize(run_settings.seed)
                parts.append(worker.process(token))
            return IterationMatrix.concatenate(parts)

        return self._run_pool(implementation, config, run_settings, sizes, token)

    def _run_pool(
        self,
        implementation: Type[Distribution],
        config: DistributionConfig,
        run_settings: SimulationSettings,
        sizes: List[int],
        token: CancellationToken,
    ) -> IterationMatrix:
        use_processes = self.config.EXECUTOR == "process"
        executor_class = ProcessPoolExecutor if use_processes else ThreadPoolExecutor
        pool = executor_class(max_workers=min(self.config.MAX_WORKERS, len(sizes)))
        # Tokens are not picklable; process batches are only cancelled between batches
        batch_token = None if use_processes else token

        parts: List[Optional[IterationMatrix]] = [None] * len(sizes)
        try:
            futures = {
                pool.submit(
                    run_batch,
                    implementation,
                    dict(config.parameters),
                    size,
                    run_settings.years,
                    run_settings.seed,
                    index,
                    None,
                    batch_token,
                ): index
                for index, size in enumerate(sizes)
            }
            for future in as_completed(futures, timeout=token.remaining()):
                parts[futures[future]] = future.result()
                token.raise_if_cancelled()
        except FuturesTimeoutError:
            token.cancel()
            raise SimulationTimeoutError("Simulation timed out before all batches completed") from None
        except BaseException:
            token.cancel()
            raise
        finally:
            pool.shutdown(wait=not use_processes, cancel_futures=True)

        return IterationMatrix.concatenate(parts)

    # ------------------------------------------------------------------ #
    # Envelope helpers
    # ------------------------------------------------------------------ #

    def _initial_info(self, distribution_config: Any, simulation_settings: SettingsInput) -> Dict[str, Any]:
        distribution_type = None
        if isinstance(distribution_config, Mapping):
            distribution_type = distribution_config.get("type")
        elif isinstance(distribution_config, DistributionConfig):
            distribution_type = distribution_config.type

        seed = None
        if isinstance(simulation_settings, Mapping):
            seed = simulation_settings.get("seed")
        elif isinstance(simulation_settings, SimulationSettings):
            seed = simulation_settings.seed

        return {
            "distribution": distribution_type,
            "iterations": self.defaults.iterations,
            "seed": seed if seed is not None else self.defaults.seed,
            "years": self.defaults.years,
            "timeElapsed": 0.0,
            "results": [],
            "errors": [],
        }

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return max(0.0, (time.perf_counter() - started) * 1000.0)

    def _fail(self, info: Dict[str, Any], messages: List[str], started: float) -> None:
        info["results"] = []
        info["errors"] = list(messages)
        info["timeElapsed"] = self._elapsed_ms(started)

    @staticmethod
    def _envelope(info: Dict[str, Any]) -> Dict[str, Any]:
        return {"success": not info["errors"], "simulationInfo": [info]}

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"MonteCarloEngine(iterations={self.defaults.iterations}, "
            f"years={self.defaults.years}, registry={self.registry!r})"
        )


def create_engine(
    settings: SettingsInput = None,
    registry: Optional[DistributionRegistry] = None,
    config: Optional[Settings] = None,
) -> MonteCarloEngine:
    """
    Engine carrying default settings for repeated calls.

    Raises
    ------
    ValidationError
        If ``settings`` are invalid.
    """
    return MonteCarloEngine(defaults=settings, registry=registry, config=config)
