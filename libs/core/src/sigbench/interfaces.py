from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Protocol

"""Invocation interfaces used by the run driver.

The driver only talks to a `BenchInvoker`; it never spawns processes itself.
`sigbench.invokers` provides the subprocess-backed implementation and a
scripted one for tests.
"""


@dataclass(frozen=True)
class InvocationContract:
    """Everything the external bench command needs for one call."""
    operation: str
    param_set: str
    message_size: int
    iterations: int
    algorithm_name: str
    library_name: str

    def as_env(self) -> Dict[str, str]:
        size = str(self.message_size)
        return {
            "OPERATION": self.operation,
            "PARAM_SET": self.param_set,
            "MESSAGE_SIZE": size,
            "MSG_SIZE": size,
            "ITERATIONS": str(self.iterations),
            "ALG_NAME": self.algorithm_name,
            "LIB_NAME": self.library_name,
        }


class BenchInvoker(Protocol):
    """Runs the external bench command once and reports its exit status."""
    def invoke(self, contract: InvocationContract, *, warmup: bool = False) -> int: ...
