from __future__ import annotations
"""`BenchInvoker` implementations.

`SubprocessInvoker` runs the configured shell command once per call with the
invocation contract exported as environment variables. `ScriptedInvoker`
replays scripted exit codes and durations without spawning anything.
"""

import logging
import os
import subprocess
from typing import Dict, List, Mapping, Optional, Sequence

from .interfaces import InvocationContract

log = logging.getLogger(__name__)


class SubprocessInvoker:
    def __init__(
        self,
        command: str,
        *,
        passthrough_output: bool = True,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self.command = command
        self.passthrough_output = passthrough_output
        self._base_env = dict(os.environ if base_env is None else base_env)

    def child_env(self, contract: InvocationContract) -> Dict[str, str]:
        env = dict(self._base_env)
        env.update(contract.as_env())
        return env

    def invoke(self, contract: InvocationContract, *, warmup: bool = False) -> int:
        quiet = warmup or not self.passthrough_output
        stream = subprocess.DEVNULL if quiet else None
        completed = subprocess.run(
            self.command,
            shell=True,
            env=self.child_env(contract),
            stdout=stream,
            stderr=stream,
        )
        if completed.returncode != 0:
            log.debug("bench command exited %s: %s", completed.returncode, self.command)
        return completed.returncode


class ScriptedInvoker:
    """In-memory invoker with scripted exit codes and per-call durations.

    `clock` advances by the scripted duration of every call, so passing
    ``invoker.clock`` to the run driver yields exact, deterministic timings.
    Durations and exit codes are consumed in call order (warmups included);
    when a script runs out, the last value repeats, or 0 when empty.
    """

    def __init__(
        self,
        durations_ns: Sequence[int] = (),
        exit_codes: Sequence[int] = (),
        *,
        fail_on_call: Optional[int] = None,
        fail_code: int = 1,
    ) -> None:
        self._durations = list(durations_ns)
        self._exit_codes = list(exit_codes)
        self._fail_on_call = fail_on_call
        self._fail_code = fail_code
        self._now = 0
        self.calls: List[InvocationContract] = []
        self.warmup_flags: List[bool] = []

    def clock(self) -> int:
        return self._now

    @staticmethod
    def _pick(script: List[int], index: int) -> int:
        if not script:
            return 0
        return script[min(index, len(script) - 1)]

    def invoke(self, contract: InvocationContract, *, warmup: bool = False) -> int:
        index = len(self.calls)
        self.calls.append(contract)
        self.warmup_flags.append(warmup)
        self._now += self._pick(self._durations, index)
        if self._fail_on_call is not None and index + 1 == self._fail_on_call:
            return self._fail_code
        return self._pick(self._exit_codes, index)

    @property
    def warmup_calls(self) -> List[InvocationContract]:
        return [c for c, warm in zip(self.calls, self.warmup_flags) if warm]

    @property
    def measured_calls(self) -> List[InvocationContract]:
        return [c for c, warm in zip(self.calls, self.warmup_flags) if not warm]
