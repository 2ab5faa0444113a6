from __future__ import annotations
"""Aggregate a published CSV run file into per-group means.

Works purely from the file on disk, so it can summarize runs produced by any
earlier process.
"""

import csv
import pathlib
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .errors import SummaryError

_REQUIRED = ("operation", "param_set", "message_size", "avg_ns", "throughput_ops_per_s")


@dataclass
class SummaryRow:
    operation: str
    param_set: str
    message_size: int
    mean_avg_ns: float
    mean_throughput_ops_per_s: float
    runs: int


def summarize_csv(path: pathlib.Path | str) -> List[SummaryRow]:
    path = pathlib.Path(path)
    if not path.is_file():
        raise SummaryError(f"CSV results file not found: {path}")
    sums: Dict[Tuple[str, str, int], List[float]] = defaultdict(lambda: [0.0, 0.0, 0])
    with path.open("r", newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        missing = [name for name in _REQUIRED if name not in (reader.fieldnames or [])]
        if missing:
            raise SummaryError(f"{path} is missing columns: {', '.join(missing)}")
        for line_no, row in enumerate(reader, start=2):
            try:
                size = int(row["message_size"])
                avg = float(row["avg_ns"])
                thr = float(row["throughput_ops_per_s"])
            except (TypeError, ValueError) as exc:
                raise SummaryError(f"{path}:{line_no}: non-numeric field ({exc})") from exc
            key = (row["operation"], row["param_set"], size)
            acc = sums[key]
            acc[0] += avg
            acc[1] += thr
            acc[2] += 1

    rows = []
    for operation, param_set, size in sorted(sums):
        total_avg, total_thr, count = sums[(operation, param_set, size)]
        rows.append(
            SummaryRow(
                operation=operation,
                param_set=param_set,
                message_size=size,
                mean_avg_ns=total_avg / count,
                mean_throughput_ops_per_s=total_thr / count,
                runs=int(count),
            )
        )
    return rows


def format_summary(rows: Sequence[SummaryRow]) -> str:
    lines = [
        "Summary (avg across runs)",
        f"{'operation':<10} {'param_set':<12} {'msg_size':>8} {'avg_ns':>12} {'throughput':>12} {'runs':>4}",
    ]
    for row in rows:
        lines.append(
            f"{row.operation:<10} {row.param_set:<12} {row.message_size:>8} "
            f"{row.mean_avg_ns:>12.0f} {row.mean_throughput_ops_per_s:>12.3f} {row.runs:>4}"
        )
    return "\n".join(lines)
