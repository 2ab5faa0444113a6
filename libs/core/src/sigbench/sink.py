from __future__ import annotations
"""Record sink: ordered accumulation and JSON/CSV publication.

Records stay in memory until the run completes. Each output file is written
to a temporary ``measurements.*`` file inside the output directory and moved
into place with ``os.replace``, so the published location only ever holds
complete files.
"""

import contextlib
import csv
import json
import logging
import os
import pathlib
import tempfile
from typing import IO, Any, Callable, Dict, Iterator, List, Sequence, Tuple

from .environment import EnvironmentSnapshot
from .metrics import CSV_FIELDS, MeasurementRecord
from .workload import HarnessConfig, OutputFormat

log = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


class RecordSink:
    def __init__(self, output_format: OutputFormat = OutputFormat.BOTH) -> None:
        self.output_format = output_format
        self._records: List[MeasurementRecord] = []

    def add(self, record: MeasurementRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> Tuple[MeasurementRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def finalize(
        self,
        config: HarnessConfig,
        environment: EnvironmentSnapshot,
        out_dir: pathlib.Path | None = None,
    ) -> List[pathlib.Path]:
        """Publish the enabled output files and return their paths.

        Every file is staged as a temporary file first; nothing is renamed
        into place until all of them have been written.
        """
        out_dir = prepare_out_dir(out_dir or config.out_dir)
        outputs: List[Tuple[pathlib.Path, Callable[[IO[str]], None]]] = []
        if self.output_format.json_enabled:
            payload = build_json_payload(config, environment, self._records)
            outputs.append((out_dir / f"run-{environment.run_id}.json", lambda fh: write_json(fh, payload)))
        if self.output_format.csv_enabled:
            records = list(self._records)
            outputs.append((out_dir / f"run-{environment.run_id}.csv", lambda fh: write_csv(fh, records)))

        written: List[pathlib.Path] = []
        with contextlib.ExitStack() as stack:
            staged = [(_stage(stack, out_dir, write), path) for path, write in outputs]
            for tmp_path, path in staged:
                os.replace(tmp_path, path)
                log.info("Wrote %s results to %s", path.suffix.lstrip(".").upper(), path)
                written.append(path)
        return written


def prepare_out_dir(out_dir: pathlib.Path | str) -> pathlib.Path:
    """Create *out_dir* and make sure files can be created inside it.

    Raises `OSError` when the directory is unusable.
    """
    out_dir = pathlib.Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    with _temporary_output(out_dir):
        pass
    return out_dir


def build_json_payload(
    config: HarnessConfig,
    environment: EnvironmentSnapshot,
    records: Sequence[MeasurementRecord],
) -> Dict[str, Any]:
    env = environment
    return {
        "schema_version": SCHEMA_VERSION,
        "metadata": {
            "run_id": env.run_id,
            "timestamp_utc": env.timestamp_utc,
            "host": env.host,
            "os_kernel": env.os_kernel,
            "cpu": {"model": env.cpu_model, "microcode": env.cpu_microcode},
            "ram_bytes": env.ram_bytes_json,
            "compiler": {
                "name": env.compiler_name,
                "version": env.compiler_version,
                "flags": env.compiler_flags,
            },
            "library": {"name": env.library_name, "commit": env.library_commit},
            "algorithm": {"name": env.algorithm_name, "param_sets": list(config.param_sets)},
            "workload": {
                "message_sizes": list(config.message_sizes),
                "iterations": config.iterations,
                "operations": list(config.operations),
                "warmup_runs": config.warmup_runs,
                "measurement_runs": config.measurement_runs,
            },
            "environment": {
                "turbo_scaling": env.turbo_scaling,
                "rng_source": env.rng_source,
                "bench_command": env.bench_command,
            },
            "workspace_commit": env.workspace_commit,
        },
        "measurements": [r.measurement_json() for r in records],
    }


def write_json(fh: IO[str], payload: Dict[str, Any]) -> None:
    json.dump(payload, fh, indent=2, ensure_ascii=False)
    fh.write("\n")


def write_csv(fh: IO[str], records: Sequence[MeasurementRecord]) -> None:
    writer = csv.writer(fh, lineterminator="\n")
    writer.writerow(CSV_FIELDS)
    for record in records:
        writer.writerow(record.csv_row())


@contextlib.contextmanager
def _temporary_output(directory: pathlib.Path) -> Iterator[Tuple[IO[str], pathlib.Path]]:
    fd, name = tempfile.mkstemp(prefix="measurements.", dir=directory)
    tmp_path = pathlib.Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            yield fh, tmp_path
    finally:
        # Removed on every exit path; a published file has already been renamed.
        if tmp_path.exists():
            tmp_path.unlink()


def _stage(stack: contextlib.ExitStack, directory: pathlib.Path, write: Callable[[IO[str]], None]) -> pathlib.Path:
    fh, tmp_path = stack.enter_context(_temporary_output(directory))
    write(fh)
    fh.flush()
    os.fsync(fh.fileno())
    fh.close()
    os.chmod(tmp_path, 0o644)
    return tmp_path
