from __future__ import annotations
"""Best-effort host introspection for benchmark metadata.

Every fact is resolved through an ordered chain of probes; the first probe
returning a non-empty string wins and the chain ends in the ``"unknown"``
sentinel. Probing never raises: failures are logged at DEBUG and skipped.
"""

import datetime as _dt
import logging
import os
import pathlib
import platform
import re
import socket
import subprocess
from dataclasses import asdict, dataclass
from functools import partial
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

log = logging.getLogger(__name__)

UNKNOWN = "unknown"

Probe = Callable[[], Optional[str]]

_HERE = pathlib.Path(__file__).resolve().parent
CPUINFO = pathlib.Path("/proc/cpuinfo")
MEMINFO = pathlib.Path("/proc/meminfo")
INTEL_NO_TURBO = pathlib.Path("/sys/devices/system/cpu/intel_pstate/no_turbo")
CPUFREQ_BOOST = pathlib.Path("/sys/devices/system/cpu/cpufreq/boost")


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """Host, toolchain and library facts shared by every record of one run."""
    run_id: str
    timestamp_utc: str
    host: str
    os_kernel: str
    cpu_model: str
    cpu_microcode: str
    ram_bytes: str
    compiler_name: str
    compiler_version: str
    compiler_flags: str
    library_name: str
    library_commit: str
    algorithm_name: str
    turbo_scaling: str
    rng_source: str
    workspace_commit: str
    bench_command: str

    def as_flat_dict(self) -> Dict[str, str]:
        return asdict(self)

    @property
    def ram_bytes_json(self) -> int | str:
        # Only plain digit strings become JSON numbers.
        if re.fullmatch(r"[0-9]+", self.ram_bytes):
            return int(self.ram_bytes)
        return self.ram_bytes


def first_available(probes: Iterable[Probe], default: str = UNKNOWN) -> str:
    for probe in probes:
        try:
            value = probe()
        except (OSError, subprocess.SubprocessError, ValueError) as exc:
            log.debug("probe %s failed: %s", getattr(probe, "__name__", probe), exc)
            continue
        if value is not None:
            value = str(value).strip()
            if value:
                return value
    return default


def _run(argv: Sequence[str]) -> str:
    return subprocess.check_output(list(argv), stderr=subprocess.DEVNULL, text=True)


def _command_output(argv: Sequence[str]) -> Optional[str]:
    return _run(argv).strip() or None


def _first_line(argv: Sequence[str]) -> Optional[str]:
    lines = _run(argv).splitlines()
    return lines[0].strip() if lines else None


def _key_value_field(text: str, key: str) -> Optional[str]:
    """Return the value of the first ``key: value`` line whose key starts with `key`."""
    needle = key.lower()
    for line in text.splitlines():
        name, sep, value = line.partition(":")
        if sep and name.strip().lower().startswith(needle):
            return value.strip()
    return None


def _file_field(path: pathlib.Path, key: str) -> Optional[str]:
    if not path.exists():
        return None
    return _key_value_field(path.read_text(encoding="utf-8", errors="ignore"), key)


def _lscpu_model() -> Optional[str]:
    return _key_value_field(_run(["lscpu"]), "model name")


def _meminfo_bytes() -> Optional[str]:
    raw = _file_field(MEMINFO, "memtotal")
    if not raw:
        return None
    kb = raw.split()[0]
    if not kb.isdigit():
        return None
    return str(int(kb) * 1024)


def _platform_kernel() -> Optional[str]:
    uname = platform.uname()
    parts = [uname.system, uname.release, uname.machine]
    return " ".join(p for p in parts if p) or None


def _turbo_from_flag(path: pathlib.Path, *, on_value: str) -> Optional[str]:
    if not path.exists():
        return None
    return "on" if path.read_text(encoding="utf-8").strip() == on_value else "off"


def _override(value: Optional[str]) -> Probe:
    return lambda: value


def _git_short_head(directory: pathlib.Path) -> Optional[str]:
    inside = _command_output(["git", "-C", str(directory), "rev-parse", "--is-inside-work-tree"])
    if inside != "true":
        return None
    return _command_output(["git", "-C", str(directory), "rev-parse", "--short", "HEAD"])


def _git_head_file(directory: pathlib.Path) -> Optional[str]:
    for candidate in (directory, *directory.parents):
        git_dir = candidate / ".git"
        if not git_dir.exists():
            continue
        if git_dir.is_file():
            content = git_dir.read_text(encoding="utf-8").strip()
            if not content.startswith("gitdir:"):
                return None
            git_dir = (candidate / content.split(":", 1)[1].strip()).resolve()
        head_path = git_dir / "HEAD"
        if not head_path.exists():
            return None
        head = head_path.read_text(encoding="utf-8").strip()
        if head.startswith("ref:"):
            ref_path = git_dir / head.split(":", 1)[1].strip()
            if not ref_path.exists():
                return None
            head = ref_path.read_text(encoding="utf-8").strip()
        return head[:7] or None
    return None


def detect_host() -> str:
    return first_available([platform.node, socket.gethostname])


def detect_os_kernel() -> str:
    return first_available([
        partial(_command_output, ["uname", "-srmo"]),
        partial(_command_output, ["uname", "-sr"]),
        _platform_kernel,
    ])


def detect_cpu_model() -> str:
    return first_available([
        _lscpu_model,
        partial(_file_field, CPUINFO, "model name"),
        partial(_command_output, ["sysctl", "-n", "machdep.cpu.brand_string"]),
    ])


def detect_cpu_microcode() -> str:
    return first_available([
        partial(_file_field, CPUINFO, "microcode"),
        partial(_command_output, ["sysctl", "-n", "machdep.cpu.microcode_version"]),
    ])


def detect_ram_bytes() -> str:
    return first_available([
        _meminfo_bytes,
        partial(_command_output, ["sysctl", "-n", "hw.memsize"]),
    ])


def detect_turbo_state(override: Optional[str] = None) -> str:
    # intel_pstate reports "no_turbo", so its polarity is inverted.
    return first_available([
        _override(override),
        partial(_turbo_from_flag, INTEL_NO_TURBO, on_value="0"),
        partial(_turbo_from_flag, CPUFREQ_BOOST, on_value="1"),
    ])


def detect_compiler_version(compiler_name: str, override: Optional[str] = None) -> str:
    return first_available([
        _override(override),
        partial(_first_line, [compiler_name, "--version"]),
    ])


def detect_workspace_commit(directory: pathlib.Path | None = None) -> str:
    directory = directory or _HERE
    return first_available([
        partial(_git_short_head, directory),
        partial(_git_head_file, directory),
    ])


def default_run_id(now: _dt.datetime | None = None) -> str:
    now = now or _dt.datetime.now(_dt.timezone.utc)
    return f"{now.strftime('%Y%m%dT%H%M%SZ')}-{os.getpid()}"


def collect_environment(
    *,
    bench_command: str = "",
    run_id: Optional[str] = None,
    compiler_name: str = "compiler",
    compiler_version: Optional[str] = None,
    compiler_flags: Optional[str] = None,
    library_name: Optional[str] = None,
    library_commit: Optional[str] = None,
    algorithm_name: Optional[str] = None,
    turbo_state: Optional[str] = None,
    rng_source: Optional[str] = None,
    workspace_dir: pathlib.Path | None = None,
    now: _dt.datetime | None = None,
) -> EnvironmentSnapshot:
    now = now or _dt.datetime.now(_dt.timezone.utc)
    snapshot = EnvironmentSnapshot(
        run_id=run_id or default_run_id(now),
        timestamp_utc=now.strftime("%Y-%m-%dT%H:%M:%SZ"),
        host=detect_host(),
        os_kernel=detect_os_kernel(),
        cpu_model=detect_cpu_model(),
        cpu_microcode=detect_cpu_microcode(),
        ram_bytes=detect_ram_bytes(),
        compiler_name=compiler_name or "compiler",
        compiler_version=detect_compiler_version(compiler_name or "compiler", compiler_version),
        compiler_flags=compiler_flags or "none",
        library_name=library_name or UNKNOWN,
        library_commit=library_commit or UNKNOWN,
        algorithm_name=algorithm_name or UNKNOWN,
        turbo_scaling=detect_turbo_state(turbo_state),
        rng_source=rng_source or UNKNOWN,
        workspace_commit=detect_workspace_commit(workspace_dir),
        bench_command=bench_command,
    )
    log.debug("environment snapshot: %s", snapshot)
    return snapshot


def snapshot_json(snapshot: EnvironmentSnapshot) -> Dict[str, Any]:
    data: Dict[str, Any] = snapshot.as_flat_dict()
    data["ram_bytes"] = snapshot.ram_bytes_json
    return data
