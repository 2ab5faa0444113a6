from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .environment import EnvironmentSnapshot

"""Measurement record containers and the derived per-run metrics.

Records are produced by the run driver, one per measured invocation, and are
serialized unchanged by the record sink so JSON and CSV always agree.
"""

CSV_FIELDS: Sequence[str] = (
    "run_id",
    "timestamp_utc",
    "host",
    "os_kernel",
    "cpu_model",
    "cpu_microcode",
    "ram_bytes",
    "compiler_name",
    "compiler_version",
    "compiler_flags",
    "library_name",
    "library_commit",
    "algorithm_name",
    "turbo_scaling",
    "rng_source",
    "workspace_commit",
    "bench_command",
    "iterations",
    "warmup_runs",
    "measurement_runs",
    "operation",
    "param_set",
    "message_size",
    "run_index",
    "total_ns",
    "avg_ns",
    "throughput_ops_per_s",
)


def avg_ns(iterations: int, total_ns: int) -> int:
    if iterations == 0:
        return 0
    return round(total_ns / iterations)


def throughput_ops_per_s(iterations: int, total_ns: int) -> float:
    if total_ns == 0:
        return 0.0
    return round(iterations * 1e9 / total_ns, 3)


@dataclass(frozen=True)
class MeasurementRecord:
    environment: EnvironmentSnapshot
    iterations: int
    warmup_runs: int
    measurement_runs: int
    operation: str  # e.g. 'keygen', 'sign', 'verify'
    param_set: str
    message_size: int
    run_index: int
    total_ns: int
    avg_ns: int
    throughput_ops_per_s: float

    @classmethod
    def from_timing(
        cls,
        environment: EnvironmentSnapshot,
        *,
        iterations: int,
        warmup_runs: int,
        measurement_runs: int,
        operation: str,
        param_set: str,
        message_size: int,
        run_index: int,
        total_ns: int,
    ) -> "MeasurementRecord":
        return cls(
            environment=environment,
            iterations=iterations,
            warmup_runs=warmup_runs,
            measurement_runs=measurement_runs,
            operation=operation,
            param_set=param_set,
            message_size=message_size,
            run_index=run_index,
            total_ns=total_ns,
            avg_ns=avg_ns(iterations, total_ns),
            throughput_ops_per_s=throughput_ops_per_s(iterations, total_ns),
        )

    def measurement_json(self) -> Dict[str, Any]:
        return {
            "param_set": self.param_set,
            "message_size": self.message_size,
            "operation": self.operation,
            "run_index": self.run_index,
            "iterations": self.iterations,
            "total_ns": self.total_ns,
            "avg_ns": self.avg_ns,
            "throughput_ops_per_s": self.throughput_ops_per_s,
        }

    def csv_row(self) -> List[Any]:
        env = self.environment
        values = {
            **env.as_flat_dict(),
            "iterations": self.iterations,
            "warmup_runs": self.warmup_runs,
            "measurement_runs": self.measurement_runs,
            "operation": self.operation,
            "param_set": self.param_set,
            "message_size": self.message_size,
            "run_index": self.run_index,
            "total_ns": self.total_ns,
            "avg_ns": self.avg_ns,
            "throughput_ops_per_s": self.throughput_ops_per_s,
        }
        return [values[name] for name in CSV_FIELDS]
