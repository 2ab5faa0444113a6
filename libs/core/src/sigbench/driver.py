from __future__ import annotations
"""Sequential run driver: warmups, timed invocations and record hand-off.

Cells are processed strictly in enumeration order, one invocation at a time.
"""

import logging
import time
from enum import Enum
from typing import Callable, Iterable, Optional

from .environment import EnvironmentSnapshot
from .errors import InvocationError
from .interfaces import BenchInvoker, InvocationContract
from .metrics import MeasurementRecord
from .sink import RecordSink
from .workload import HarnessConfig, WorkloadCell

log = logging.getLogger(__name__)

ProgressCallback = Callable[[WorkloadCell, int, int], None]


class DriverState(str, Enum):
    IDLE = "idle"
    WARMING = "warming"
    MEASURING = "measuring"
    DONE = "done"
    FAILED = "failed"


class RunDriver:
    def __init__(
        self,
        config: HarnessConfig,
        environment: EnvironmentSnapshot,
        invoker: BenchInvoker,
        sink: RecordSink,
        *,
        clock: Callable[[], int] = time.perf_counter_ns,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> None:
        self.config = config
        self.environment = environment
        self.invoker = invoker
        self.sink = sink
        self.clock = clock
        self.progress_cb = progress_cb
        self.state = DriverState.IDLE
        self.current_cell: WorkloadCell | None = None

    def contract_for(self, cell: WorkloadCell) -> InvocationContract:
        return InvocationContract(
            operation=cell.operation,
            param_set=cell.param_set,
            message_size=cell.message_size,
            iterations=self.config.iterations,
            algorithm_name=self.config.algorithm_name,
            library_name=self.config.library_name,
        )

    def run(self, cells: Iterable[WorkloadCell] | None = None) -> RecordSink:
        """Drive every cell and return the populated sink.

        Raises `InvocationError` on the first measured invocation that exits
        non-zero; the driver is then FAILED and cannot be reused.
        """
        if self.state in (DriverState.DONE, DriverState.FAILED):
            raise RuntimeError(f"run driver already {self.state.value}")
        for cell in (self.config.cells() if cells is None else cells):
            self.current_cell = cell
            self._warm(cell)
            self._measure(cell)
            self.state = DriverState.IDLE
        self.current_cell = None
        self.state = DriverState.DONE
        return self.sink

    def _warm(self, cell: WorkloadCell) -> None:
        if self.config.warmup_runs <= 0:
            return
        self.state = DriverState.WARMING
        for warm in range(1, self.config.warmup_runs + 1):
            rc = self.invoker.invoke(self.contract_for(cell), warmup=True)
            if rc != 0:
                log.warning(
                    "warmup %d/%d for %s %s msg=%d exited %d; continuing",
                    warm, self.config.warmup_runs, cell.operation, cell.param_set, cell.message_size, rc,
                )

    def _measure(self, cell: WorkloadCell) -> None:
        runs = self.config.measurement_runs
        for run_index in range(1, runs + 1):
            self.state = DriverState.MEASURING
            self._report_progress(cell, run_index, runs)
            contract = self.contract_for(cell)
            start = self.clock()
            rc = self.invoker.invoke(contract)
            end = self.clock()
            if rc != 0:
                self.state = DriverState.FAILED
                raise InvocationError(cell, run_index, rc)
            self.sink.add(
                MeasurementRecord.from_timing(
                    self.environment,
                    iterations=self.config.iterations,
                    warmup_runs=self.config.warmup_runs,
                    measurement_runs=runs,
                    operation=cell.operation,
                    param_set=cell.param_set,
                    message_size=cell.message_size,
                    run_index=run_index,
                    total_ns=end - start,
                )
            )

    def _report_progress(self, cell: WorkloadCell, run_index: int, runs: int) -> None:
        if self.progress_cb is None:
            return
        try:
            self.progress_cb(cell, run_index, runs)
        except Exception:
            # Never let progress reporting break measurements
            log.debug("progress callback failed", exc_info=True)
