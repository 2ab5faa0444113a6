from __future__ import annotations

import datetime as _dt
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
CLI_SRC = ROOT / "apps" / "cli" / "src"
CORE_SRC = ROOT / "libs" / "core" / "src"

for candidate in (CLI_SRC, CORE_SRC):
    candidate_str = str(candidate)
    if candidate_str not in sys.path:
        sys.path.insert(0, candidate_str)

from sigbench.environment import EnvironmentSnapshot  # noqa: E402
from sigbench.workload import build_config  # noqa: E402


def make_snapshot(**overrides) -> EnvironmentSnapshot:
    values = dict(
        run_id="20240101T000000Z-42",
        timestamp_utc="2024-01-01T00:00:00Z",
        host="bench-host",
        os_kernel="Linux 6.1.0 x86_64 GNU/Linux",
        cpu_model="Test CPU @ 3.00GHz",
        cpu_microcode="0xf0",
        ram_bytes="17179869184",
        compiler_name="rustc",
        compiler_version="rustc 1.80.0 (abc 2024-07-21)",
        compiler_flags="none",
        library_name="xmss",
        library_commit="unknown",
        algorithm_name="XMSS",
        turbo_scaling="off",
        rng_source="unknown",
        workspace_commit="abc1234",
        bench_command="cargo run --release --bin xmss_bench --",
    )
    values.update(overrides)
    return EnvironmentSnapshot(**values)


@pytest.fixture
def snapshot() -> EnvironmentSnapshot:
    return make_snapshot()


@pytest.fixture
def small_config(tmp_path: Path):
    return build_config(
        bench_command="true",
        out_dir=tmp_path / "results",
        output_format="both",
        param_sets="A,B",
        message_sizes="32,64",
        operations="keygen,sign",
        iterations=10,
        warmup_runs=0,
        measurement_runs=2,
        algorithm_name="XMSS",
        library_name="xmss",
    )


@pytest.fixture
def fixed_now() -> _dt.datetime:
    return _dt.datetime(2024, 1, 1, tzinfo=_dt.timezone.utc)
