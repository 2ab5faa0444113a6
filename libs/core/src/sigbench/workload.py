from __future__ import annotations
"""Workload configuration and benchmark-cell enumeration.

Raw comma-separated inputs are normalised and validated up front so that a
bad configuration never reaches the bench command.
"""

import itertools
import pathlib
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

from .errors import ConfigError

_UINT_RE = re.compile(r"[0-9]+")


class OutputFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    BOTH = "both"

    @property
    def json_enabled(self) -> bool:
        return self in (OutputFormat.JSON, OutputFormat.BOTH)

    @property
    def csv_enabled(self) -> bool:
        return self in (OutputFormat.CSV, OutputFormat.BOTH)


@dataclass(frozen=True)
class WorkloadCell:
    param_set: str
    message_size: int
    operation: str


@dataclass(frozen=True)
class HarnessConfig:
    """Validated run-level configuration (the run metadata)."""
    bench_command: str
    out_dir: pathlib.Path
    output_format: OutputFormat
    param_sets: Tuple[str, ...]
    message_sizes: Tuple[int, ...]
    operations: Tuple[str, ...]
    iterations: int = 100
    warmup_runs: int = 3
    measurement_runs: int = 5
    algorithm_name: str = ""
    library_name: str = ""

    def cells(self) -> List[WorkloadCell]:
        return enumerate_cells(self.param_sets, self.message_sizes, self.operations)

    @property
    def total_measurements(self) -> int:
        return len(self.param_sets) * len(self.message_sizes) * len(self.operations) * self.measurement_runs


def split_list(raw: str | None) -> List[str]:
    """Split on commas, trim items and drop empties. Order and duplicates are kept."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def parse_message_sizes(raw: str | None) -> List[int]:
    items = split_list(raw)
    for item in items:
        if not _UINT_RE.fullmatch(item):
            raise ConfigError(
                f"MSG_SIZES must be a comma-separated list of integers (got {item!r}).",
                param="msg_sizes",
            )
    return [int(item) for item in items]


def parse_output_format(raw: str | OutputFormat) -> OutputFormat:
    if isinstance(raw, OutputFormat):
        return raw
    try:
        return OutputFormat(str(raw).strip().lower())
    except ValueError:
        raise ConfigError(f"Unknown format: {raw}", param="format") from None


def _non_negative(name: str, value: int) -> int:
    if value < 0:
        raise ConfigError(f"{name} must be a non-negative integer.", param=name.lower())
    return value


def build_config(
    *,
    bench_command: str | None,
    out_dir: pathlib.Path | str,
    output_format: str | OutputFormat = OutputFormat.BOTH,
    param_sets: str | None,
    message_sizes: str | None,
    operations: str | None,
    iterations: int = 100,
    warmup_runs: int = 3,
    measurement_runs: int = 5,
    algorithm_name: str = "",
    library_name: str = "",
) -> HarnessConfig:
    if not bench_command or not bench_command.strip():
        raise ConfigError("BENCH_CMD is required.", param="bench_cmd")
    fmt = parse_output_format(output_format)
    params = split_list(param_sets)
    sizes = parse_message_sizes(message_sizes)
    ops = split_list(operations)
    if not params or not sizes or not ops:
        raise ConfigError("PARAM_SETS, MSG_SIZES, and OPERATIONS must be non-empty.")
    return HarnessConfig(
        bench_command=bench_command,
        out_dir=pathlib.Path(out_dir),
        output_format=fmt,
        param_sets=tuple(params),
        message_sizes=tuple(sizes),
        operations=tuple(ops),
        iterations=_non_negative("ITERATIONS", iterations),
        warmup_runs=_non_negative("WARMUP_RUNS", warmup_runs),
        measurement_runs=_non_negative("RUNS", measurement_runs),
        algorithm_name=algorithm_name,
        library_name=library_name,
    )


def enumerate_cells(
    param_sets: Sequence[str],
    message_sizes: Iterable[int],
    operations: Sequence[str],
) -> List[WorkloadCell]:
    """Cross-product ordered param set, then message size, then operation."""
    return [
        WorkloadCell(param_set=p, message_size=s, operation=o)
        for p, s, o in itertools.product(param_sets, list(message_sizes), operations)
    ]
