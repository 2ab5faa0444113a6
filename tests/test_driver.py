from __future__ import annotations

import pytest

from sigbench.driver import DriverState, RunDriver
from sigbench.errors import InvocationError
from sigbench.invokers import ScriptedInvoker
from sigbench.sink import RecordSink
from sigbench.workload import build_config


def _driver(config, snapshot, invoker, **kwargs):
    sink = RecordSink(config.output_format)
    return RunDriver(config, snapshot, invoker, sink, clock=invoker.clock, **kwargs), sink


def test_enumeration_completeness(small_config, snapshot) -> None:
    invoker = ScriptedInvoker(durations_ns=[1000])
    driver, sink = _driver(small_config, snapshot, invoker)
    driver.run()

    records = sink.records
    assert len(records) == 16
    assert {r.run_index for r in records} == {1, 2}
    keys = {(r.param_set, r.message_size, r.operation, r.run_index) for r in records}
    assert len(keys) == 16
    assert driver.state is DriverState.DONE
    assert all(r.environment is snapshot for r in records)


def test_records_follow_generation_order(small_config, snapshot) -> None:
    invoker = ScriptedInvoker(durations_ns=[1000])
    driver, sink = _driver(small_config, snapshot, invoker)
    driver.run()
    order = [(r.param_set, r.message_size, r.operation, r.run_index) for r in sink.records]
    assert order[:4] == [("A", 32, "keygen", 1), ("A", 32, "keygen", 2), ("A", 32, "sign", 1), ("A", 32, "sign", 2)]
    assert order[-1] == ("B", 64, "sign", 2)


def test_timings_and_derived_metrics(small_config, snapshot) -> None:
    durations = [2_000_000 + i for i in range(16)]
    invoker = ScriptedInvoker(durations_ns=durations)
    driver, sink = _driver(small_config, snapshot, invoker)
    driver.run()
    for record, expected in zip(sink.records, durations):
        assert record.total_ns == expected
        assert record.avg_ns == round(expected / 10)
        assert record.throughput_ops_per_s == round(10 * 1e9 / expected, 3)


def test_contract_is_passed_to_invoker(small_config, snapshot) -> None:
    invoker = ScriptedInvoker()
    driver, _ = _driver(small_config, snapshot, invoker)
    driver.run()
    first = invoker.calls[0]
    assert first.as_env() == {
        "OPERATION": "keygen",
        "PARAM_SET": "A",
        "MESSAGE_SIZE": "32",
        "MSG_SIZE": "32",
        "ITERATIONS": "10",
        "ALG_NAME": "XMSS",
        "LIB_NAME": "xmss",
    }


def test_warmups_run_first_and_failures_are_ignored(tmp_path, snapshot) -> None:
    config = build_config(
        bench_command="true",
        out_dir=tmp_path,
        param_sets="A",
        message_sizes="32",
        operations="sign,verify",
        iterations=5,
        warmup_runs=2,
        measurement_runs=1,
    )
    # Every warmup fails, every measured run succeeds.
    invoker = ScriptedInvoker(exit_codes=[3, 3, 0, 3, 3, 0])
    driver, sink = _driver(config, snapshot, invoker)
    driver.run()
    assert invoker.warmup_flags == [True, True, False, True, True, False]
    assert len(invoker.warmup_calls) == 4
    assert [r.operation for r in sink.records] == ["sign", "verify"]


def test_fail_fast_on_second_run_of_second_cell(small_config, snapshot) -> None:
    runs = small_config.measurement_runs
    invoker = ScriptedInvoker(durations_ns=[500], fail_on_call=runs + 2, fail_code=7)
    driver, sink = _driver(small_config, snapshot, invoker)

    with pytest.raises(InvocationError) as excinfo:
        driver.run()

    err = excinfo.value
    assert err.returncode == 7
    assert err.run_index == 2
    assert (err.cell.param_set, err.cell.message_size, err.cell.operation) == ("A", 32, "sign")
    assert driver.state is DriverState.FAILED
    # Cell 1 fully, plus run 1 of cell 2; nothing for the failing run or later cells.
    assert [(r.operation, r.run_index) for r in sink.records] == [("keygen", 1), ("keygen", 2), ("sign", 1)]
    assert len(invoker.calls) == runs + 2

    with pytest.raises(RuntimeError):
        driver.run()


def test_progress_callback_errors_do_not_break_runs(small_config, snapshot) -> None:
    seen = []

    def progress(cell, run_index, runs):
        seen.append((cell.operation, run_index, runs))
        raise ValueError("display went away")

    invoker = ScriptedInvoker()
    driver, sink = _driver(small_config, snapshot, invoker, progress_cb=progress)
    driver.run()
    assert len(sink) == 16
    assert seen[0] == ("keygen", 1, 2)


def test_zero_measured_runs_produce_no_records(tmp_path, snapshot) -> None:
    config = build_config(
        bench_command="true", out_dir=tmp_path, param_sets="A", message_sizes="0",
        operations="keygen", warmup_runs=1, measurement_runs=0,
    )
    invoker = ScriptedInvoker()
    driver, sink = _driver(config, snapshot, invoker)
    driver.run()
    assert len(sink) == 0
    assert invoker.warmup_flags == [True]
