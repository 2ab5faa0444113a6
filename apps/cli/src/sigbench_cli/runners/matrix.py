from __future__ import annotations
import logging
import os
import pathlib
import sys
from typing import Optional

import typer

from sigbench import presets
from sigbench.driver import RunDriver
from sigbench.environment import collect_environment
from sigbench.errors import ConfigError, InvocationError, SummaryError
from sigbench.invokers import SubprocessInvoker
from sigbench.sink import RecordSink, prepare_out_dir
from sigbench.summary import format_summary, summarize_csv
from sigbench.workload import OutputFormat, WorkloadCell, build_config

log = logging.getLogger(__name__)

DEFAULT_PARAM_SETS = "SPHINCS-256f,SPHINCS-256s"
DEFAULT_MSG_SIZES = "32,256,1024,4096"
DEFAULT_OPERATIONS = "keygen,sign,verify"
DEFAULT_COMPILER = "compiler"

app = typer.Typer(add_completion=False)


def _repo_root() -> pathlib.Path:
    """Best-effort detection of the repository root (directory containing .git).
    Falls back to the current working directory if not found.
    """
    here = pathlib.Path(__file__).resolve()
    for p in (here, *here.parents):
        if (p / ".git").exists():
            return p
    return pathlib.Path.cwd()


def _layered(value: Optional[str], envvar: str, fallback: str) -> str:
    # An explicitly empty environment value still counts as set.
    if value is not None:
        return value
    if envvar in os.environ:
        return os.environ[envvar]
    return fallback


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _make_invoker(command: str, *, passthrough_output: bool):
    return SubprocessInvoker(command, passthrough_output=passthrough_output)


def _echo_progress(cell: WorkloadCell, run_index: int, runs: int) -> None:
    typer.echo(f"Running {cell.operation} {cell.param_set} msg={cell.message_size} run={run_index}/{runs}...")


_PARAM_HINTS = {
    "bench_cmd": "'--bench-cmd' / BENCH_CMD",
    "msg_sizes": "'--msg-sizes' / MSG_SIZES",
    "format": "'--format' / FORMAT",
    "out_dir": "'--out-dir' / OUT_DIR",
}


@app.command()
def main(
    ctx: typer.Context,
    bench_cmd: Optional[str] = typer.Option(None, "--bench-cmd", envvar="BENCH_CMD", help="Shell command run once per invocation."),
    out_dir: Optional[pathlib.Path] = typer.Option(None, "--out-dir", envvar="OUT_DIR", help="Directory for run-<id>.json/.csv (default: <repo>/results)."),
    output_format: OutputFormat = typer.Option(OutputFormat.BOTH, "--format", envvar="FORMAT", case_sensitive=False),
    param_sets: Optional[str] = typer.Option(None, "--param-sets", envvar="PARAM_SETS", help="Comma-separated parameter sets."),
    msg_sizes: Optional[str] = typer.Option(None, "--msg-sizes", envvar="MSG_SIZES", help=f"Comma-separated message sizes in bytes (default: {DEFAULT_MSG_SIZES})."),
    iterations: int = typer.Option(100, "--iterations", envvar="ITERATIONS", min=0, help="Repetitions the bench command performs per invocation."),
    runs: int = typer.Option(5, "--runs", envvar="RUNS", min=0, help="Measured invocations per cell."),
    warmups: int = typer.Option(3, "--warmups", envvar="WARMUP_RUNS", min=0, help="Discarded warmup invocations per cell."),
    operations: Optional[str] = typer.Option(None, "--operations", envvar="OPERATIONS", help=f"Comma-separated operations (default: {DEFAULT_OPERATIONS})."),
    preset: Optional[str] = typer.Option(None, "--preset", envvar="SIGBENCH_PRESET", help="Algorithm preset supplying default labels and parameter sets."),
    alg_name: Optional[str] = typer.Option(None, "--alg-name", envvar="ALG_NAME"),
    lib_name: Optional[str] = typer.Option(None, "--lib-name", envvar="LIB_NAME"),
    lib_commit: Optional[str] = typer.Option(None, "--lib-commit", envvar="LIB_COMMIT"),
    rng_source: Optional[str] = typer.Option(None, "--rng-source", envvar="RNG_SOURCE"),
    compiler_name: Optional[str] = typer.Option(None, "--compiler-name", envvar="COMPILER_NAME"),
    compiler_version: Optional[str] = typer.Option(None, "--compiler-version", envvar="COMPILER_VERSION"),
    compiler_flags: Optional[str] = typer.Option(None, "--compiler-flags", envvar=["COMPILER_FLAGS", "RUSTFLAGS"]),
    turbo_state: Optional[str] = typer.Option(None, "--turbo-state", envvar="TURBO_STATE"),
    run_id: Optional[str] = typer.Option(None, "--run-id", envvar="RUN_ID"),
    print_summary: bool = typer.Option(False, "--print-summary/--no-print-summary", envvar="PRINT_SUMMARY", help="Print per-group means from the CSV output."),
    bench_output: bool = typer.Option(True, "--bench-output/--no-bench-output", help="Pass the bench command's stdout/stderr through on measured runs."),
    log_level: str = typer.Option("INFO", "--log-level", envvar="SIGBENCH_LOG_LEVEL"),
) -> None:
    """
    Run the bench command across every (param set, message size, operation) cell.
    """
    _configure_logging(log_level)

    chosen = None
    if preset:
        try:
            chosen = presets.registry.get(preset)
        except KeyError:
            known = ", ".join(sorted(presets.registry.list()))
            raise typer.BadParameter(f"unknown preset {preset!r} (known: {known})", ctx=ctx, param_hint="'--preset'")

    default_params = ",".join(chosen.param_sets) if chosen else DEFAULT_PARAM_SETS
    alg_name = alg_name or (chosen.algorithm_name if chosen else "unknown")
    lib_name = lib_name or (chosen.library_name if chosen else "unknown")
    compiler_name = compiler_name or (chosen.compiler_name if chosen else DEFAULT_COMPILER)

    try:
        config = build_config(
            bench_command=bench_cmd,
            out_dir=out_dir or _repo_root() / "results",
            output_format=output_format,
            param_sets=_layered(param_sets, "PARAM_SETS", default_params),
            message_sizes=_layered(msg_sizes, "MSG_SIZES", DEFAULT_MSG_SIZES),
            operations=_layered(operations, "OPERATIONS", DEFAULT_OPERATIONS),
            iterations=iterations,
            warmup_runs=warmups,
            measurement_runs=runs,
            algorithm_name=alg_name,
            library_name=lib_name,
        )
    except ConfigError as exc:
        raise typer.BadParameter(str(exc), ctx=ctx, param_hint=_PARAM_HINTS.get(exc.param or "")) from exc

    try:
        prepare_out_dir(config.out_dir)
    except OSError as exc:
        raise typer.BadParameter(
            f"cannot write to {config.out_dir}: {exc.strerror or exc}", ctx=ctx, param_hint=_PARAM_HINTS["out_dir"]
        ) from exc

    environment = collect_environment(
        bench_command=config.bench_command,
        run_id=run_id,
        compiler_name=compiler_name,
        compiler_version=compiler_version,
        compiler_flags=compiler_flags,
        library_name=lib_name,
        library_commit=lib_commit,
        algorithm_name=alg_name,
        turbo_state=turbo_state,
        rng_source=rng_source,
    )
    sink = RecordSink(config.output_format)
    driver = RunDriver(
        config,
        environment,
        _make_invoker(config.bench_command, passthrough_output=bench_output),
        sink,
        progress_cb=_echo_progress,
    )
    try:
        driver.run()
    except InvocationError as exc:
        log.error("aborting run %s after %d measurement(s): %s", environment.run_id, len(sink), exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=exc.returncode if exc.returncode > 0 else 1)

    try:
        written = sink.finalize(config, environment)
    except OSError as exc:
        log.error("could not publish run %s to %s: %s", environment.run_id, config.out_dir, exc)
        typer.echo(f"Error: could not write results to {config.out_dir}: {exc}", err=True)
        raise typer.Exit(code=1)
    for path in written:
        kind = "JSON" if path.suffix == ".json" else "CSV"
        typer.echo(f"Wrote {kind} results to {path}")

    if print_summary:
        csv_path = next((p for p in written if p.suffix == ".csv"), None)
        if csv_path is None:
            log.warning("PRINT_SUMMARY requested but CSV output is disabled.")
            return
        try:
            rows = summarize_csv(csv_path)
        except SummaryError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1)
        typer.echo("")
        typer.echo(format_summary(rows))


def app_main():
    app()

if __name__ == "__main__":
    app_main()
