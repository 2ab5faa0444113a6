from __future__ import annotations
from typing import TYPE_CHECKING

"""Error taxonomy shared by the harness and the CLI front end."""

if TYPE_CHECKING:
    from .workload import WorkloadCell


class SigbenchError(Exception):
    """Base class for every harness error."""


class ConfigError(SigbenchError, ValueError):
    """Invalid workload or output configuration, detected before any invocation."""

    def __init__(self, message: str, *, param: str | None = None) -> None:
        super().__init__(message)
        self.param = param


class InvocationError(SigbenchError, RuntimeError):
    """A measured invocation of the bench command exited non-zero."""

    def __init__(self, cell: "WorkloadCell", run_index: int, returncode: int) -> None:
        self.cell = cell
        self.run_index = run_index
        self.returncode = returncode
        super().__init__(
            f"bench command failed with exit status {returncode} "
            f"(operation={cell.operation} param_set={cell.param_set} "
            f"msg={cell.message_size} run={run_index})"
        )


class SummaryError(SigbenchError):
    """The tabular results file cannot be summarized."""
