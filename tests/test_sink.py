from __future__ import annotations

import csv
import json
import logging

import pytest

import sigbench.sink as sink_module
from conftest import make_snapshot
from sigbench.driver import RunDriver
from sigbench.invokers import ScriptedInvoker
from sigbench.metrics import CSV_FIELDS
from sigbench.sink import RecordSink, build_json_payload
from sigbench.workload import OutputFormat, build_config


def _run(config, snapshot, durations=(1_234_567, 987_654_321, 3, 10_000_001)):
    invoker = ScriptedInvoker(durations_ns=list(durations))
    sink = RecordSink(config.output_format)
    RunDriver(config, snapshot, invoker, sink, clock=invoker.clock).run()
    return sink


def _read_csv(path):
    with path.open(newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh))


def test_cross_format_consistency(small_config, snapshot) -> None:
    sink = _run(small_config, snapshot)
    paths = sink.finalize(small_config, snapshot)
    json_path, csv_path = paths
    assert json_path.name == f"run-{snapshot.run_id}.json"
    assert csv_path.name == f"run-{snapshot.run_id}.csv"

    doc = json.loads(json_path.read_text(encoding="utf-8"))
    rows = _read_csv(csv_path)
    assert len(rows) == len(doc["measurements"]) == 16

    by_key = {
        (m["operation"], m["param_set"], m["message_size"], m["run_index"]): m
        for m in doc["measurements"]
    }
    for row in rows:
        key = (row["operation"], row["param_set"], int(row["message_size"]), int(row["run_index"]))
        measurement = by_key[key]
        assert int(row["total_ns"]) == measurement["total_ns"]
        assert int(row["avg_ns"]) == measurement["avg_ns"]
        assert float(row["throughput_ops_per_s"]) == measurement["throughput_ops_per_s"]
        # Same textual rendering, not merely equal after parsing.
        assert row["throughput_ops_per_s"] == json.dumps(measurement["throughput_ops_per_s"])


def test_csv_header_and_json_layout(small_config, snapshot) -> None:
    sink = _run(small_config, snapshot)
    json_path, csv_path = sink.finalize(small_config, snapshot)

    with csv_path.open(newline="", encoding="utf-8") as fh:
        header = next(csv.reader(fh))
    assert header == list(CSV_FIELDS)

    doc = json.loads(json_path.read_text(encoding="utf-8"))
    assert doc["schema_version"] == "1.0"
    meta = doc["metadata"]
    assert meta["ram_bytes"] == 17179869184
    assert meta["cpu"] == {"model": snapshot.cpu_model, "microcode": snapshot.cpu_microcode}
    assert meta["algorithm"] == {"name": "XMSS", "param_sets": ["A", "B"]}
    assert meta["workload"] == {
        "message_sizes": [32, 64],
        "iterations": 10,
        "operations": ["keygen", "sign"],
        "warmup_runs": 0,
        "measurement_runs": 2,
    }
    assert meta["environment"]["bench_command"] == snapshot.bench_command
    assert set(doc["measurements"][0]) == {
        "param_set", "message_size", "operation", "run_index",
        "iterations", "total_ns", "avg_ns", "throughput_ops_per_s",
    }


def test_escaping_round_trip(tmp_path) -> None:
    tricky = 'cargo run -- --label "a,b"\nnext\tline \\ end\r'
    snapshot = make_snapshot(bench_command=tricky, os_kernel='Linux "6.1", x86_64')
    config = build_config(
        bench_command=tricky,
        out_dir=tmp_path,
        param_sets='P "1"',
        message_sizes="32",
        operations="sign",
        warmup_runs=0,
        measurement_runs=1,
    )
    sink = _run(config, snapshot)
    json_path, csv_path = sink.finalize(config, snapshot)

    rows = _read_csv(csv_path)
    assert len(rows) == 1
    assert rows[0]["bench_command"] == tricky
    assert rows[0]["os_kernel"] == 'Linux "6.1", x86_64'
    assert rows[0]["param_set"] == 'P "1"'

    doc = json.loads(json_path.read_text(encoding="utf-8"))
    assert doc["metadata"]["environment"]["bench_command"] == tricky
    assert doc["metadata"]["os_kernel"] == 'Linux "6.1", x86_64'
    assert doc["measurements"][0]["param_set"] == 'P "1"'


@pytest.mark.parametrize(
    "fmt,suffixes",
    [(OutputFormat.JSON, [".json"]), (OutputFormat.CSV, [".csv"]), (OutputFormat.BOTH, [".json", ".csv"])],
)
def test_format_selection(tmp_path, snapshot, fmt, suffixes) -> None:
    config = build_config(
        bench_command="true", out_dir=tmp_path / "nested" / "out", output_format=fmt,
        param_sets="A", message_sizes="32", operations="sign", measurement_runs=1,
    )
    sink = _run(config, snapshot)
    paths = sink.finalize(config, snapshot)
    assert [p.suffix for p in paths] == suffixes
    assert sorted(p.name for p in (tmp_path / "nested" / "out").iterdir()) == sorted(p.name for p in paths)


def test_interrupted_write_leaves_no_files(small_config, snapshot, monkeypatch: pytest.MonkeyPatch) -> None:
    sink = _run(small_config, snapshot)

    def interrupted(fh, payload):
        fh.write("{ partial")
        raise KeyboardInterrupt

    monkeypatch.setattr(sink_module, "write_json", interrupted)
    with pytest.raises(KeyboardInterrupt):
        sink.finalize(small_config, snapshot)
    assert list(small_config.out_dir.iterdir()) == []


def test_failed_csv_write_publishes_nothing(small_config, snapshot, monkeypatch: pytest.MonkeyPatch) -> None:
    sink = _run(small_config, snapshot)

    def disk_full(fh, records):
        fh.write("operation,")
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(sink_module, "write_csv", disk_full)
    with pytest.raises(OSError):
        sink.finalize(small_config, snapshot)
    assert list(small_config.out_dir.iterdir()) == []


def test_prepare_out_dir_rejects_path_below_a_file(tmp_path) -> None:
    blocker = tmp_path / "afile"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(OSError):
        sink_module.prepare_out_dir(blocker / "out")

    target = sink_module.prepare_out_dir(tmp_path / "a" / "b")
    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_build_json_payload_with_textual_ram(small_config) -> None:
    snapshot = make_snapshot(ram_bytes="unknown")
    payload = build_json_payload(small_config, snapshot, [])
    assert payload["metadata"]["ram_bytes"] == "unknown"
    assert payload["measurements"] == []


def test_published_files_are_logged_at_info(small_config, snapshot, caplog) -> None:
    sink = _run(small_config, snapshot)
    with caplog.at_level(logging.INFO, logger="sigbench.sink"):
        json_path, csv_path = sink.finalize(small_config, snapshot)
    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
    assert f"Wrote JSON results to {json_path}" in messages
    assert f"Wrote CSV results to {csv_path}" in messages
