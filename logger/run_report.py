"""Pass/fail banner lines for a single command-line run.

The ``&&&&`` prefix keeps the lines greppable in CI logs::

    &&&& RUNNING TensorRT.onnx_classifier # trt-classifier --fp16
    &&&& PASSED TensorRT.onnx_classifier # trt-classifier --fp16
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

_BANNER = "&&&&"


@dataclass(frozen=True)
class RunReport:
    name: str
    command_line: str

    @classmethod
    def define(cls, name: str, argv: Sequence[str]) -> "RunReport":
        return cls(name=name, command_line=" ".join(str(arg) for arg in argv))

    def _line(self, status: str) -> str:
        return f"{_BANNER} {status} {self.name} # {self.command_line}"

    def start(self) -> None:
        print(self._line("RUNNING"))

    def passed(self) -> int:
        print(self._line("PASSED"))
        return EXIT_SUCCESS

    def failed(self) -> int:
        print(self._line("FAILED"))
        return EXIT_FAILURE
