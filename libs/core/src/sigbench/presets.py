from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

"""Named algorithm presets for the bench crates of the workspace.

A preset only fills in defaults (parameter sets, algorithm/library labels,
compiler); explicit CLI flags and environment variables always win.
"""


@dataclass(frozen=True)
class AlgorithmPreset:
    name: str
    algorithm_name: str
    library_name: str
    param_sets: Tuple[str, ...]
    compiler_name: str = "rustc"
    notes: str = ""


class _Registry:
    def __init__(self) -> None:
        self._items: Dict[str, Any] = {}

    def register(self, name: str) -> Callable[[Any], Any]:
        def _inner(obj: Any) -> Any:
            self._items[name] = obj
            return obj
        return _inner

    def add(self, preset: AlgorithmPreset) -> AlgorithmPreset:
        return self.register(preset.name)(preset)

    def get(self, name: str) -> AlgorithmPreset:
        return self._items[name]

    def list(self) -> Dict[str, AlgorithmPreset]:
        return dict(self._items)


registry = _Registry()

for _preset in (
    AlgorithmPreset("sphincs", "SPHINCS (original)", "gravity-rs", ("SPHINCS-256f", "SPHINCS-256s")),
    AlgorithmPreset("sphincs_plus", "SPHINCS+ / SLH-DSA", "pqcrypto-sphincsplus",
                    ("SLH-DSA-SHA2-128f", "SPHINCS+-SHAKE-128f-simple")),
    AlgorithmPreset("dilithium", "ML-DSA (Dilithium)", "ml-dsa", ("ML-DSA-44", "ML-DSA-65", "ML-DSA-87")),
    AlgorithmPreset("falcon", "Falcon", "pqcrypto-falcon", ("Falcon-512",)),
    AlgorithmPreset("xmss", "XMSS", "xmss", ("XMSS-SHA2_10_256", "XMSS-SHA2_16_256", "XMSS-SHA2_20_256"),
                    notes="stateful; sign consumes one-time keys"),
    AlgorithmPreset("xmssmt", "XMSS^MT", "xmssmt", ("XMSSMT-L1", "XMSSMT-L3", "XMSSMT-L5"),
                    notes="stateful; sign consumes one-time keys"),
    AlgorithmPreset("lms", "LMS", "lms-signature",
                    ("LMS-SHA256-M32-H5+LMOTS-SHA256-N32-W4", "LMS-SHA256-M32-H10+LMOTS-SHA256-N32-W4"),
                    notes="stateful; sign consumes one-time keys"),
    AlgorithmPreset("hss", "HSS", "hbs-lms", ("HSS-SHA256-H5-W2-L1", "HSS-SHA256-H5-W2-L2"),
                    notes="stateful; sign consumes one-time keys"),
    AlgorithmPreset("lm_ots", "LM-OTS", "lms-signature",
                    ("LMOTS_SHA256_N32_W1", "LMOTS_SHA256_N32_W2", "LMOTS_SHA256_N32_W4", "LMOTS_SHA256_N32_W8"),
                    notes="one-time signatures"),
    AlgorithmPreset("lamport_ots", "Lamport OTS", "lamport-ots", ("Lamport-OTS-256",), notes="one-time signatures"),
    AlgorithmPreset("winternitz_ots", "Winternitz OTS (W-OTS)", "winternitz-ots-0.3.0", ("w16-n32-blake2b",),
                    notes="one-time signatures"),
):
    registry.add(_preset)
