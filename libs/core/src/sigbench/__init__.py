from .errors import SigbenchError, ConfigError, InvocationError, SummaryError
from .environment import EnvironmentSnapshot, collect_environment, UNKNOWN
from .interfaces import BenchInvoker, InvocationContract
from .invokers import ScriptedInvoker, SubprocessInvoker
from .metrics import CSV_FIELDS, MeasurementRecord
from .workload import HarnessConfig, OutputFormat, WorkloadCell, build_config, enumerate_cells
from .sink import RecordSink, build_json_payload, prepare_out_dir
from .driver import DriverState, RunDriver
from .summary import SummaryRow, format_summary, summarize_csv
from .presets import AlgorithmPreset, registry

__all__ = [
    "SigbenchError",
    "ConfigError",
    "InvocationError",
    "SummaryError",
    "EnvironmentSnapshot",
    "collect_environment",
    "UNKNOWN",
    "BenchInvoker",
    "InvocationContract",
    "ScriptedInvoker",
    "SubprocessInvoker",
    "CSV_FIELDS",
    "MeasurementRecord",
    "HarnessConfig",
    "OutputFormat",
    "WorkloadCell",
    "build_config",
    "enumerate_cells",
    "RecordSink",
    "build_json_payload",
    "prepare_out_dir",
    "DriverState",
    "RunDriver",
    "SummaryRow",
    "format_summary",
    "summarize_csv",
    "AlgorithmPreset",
    "registry",
]
