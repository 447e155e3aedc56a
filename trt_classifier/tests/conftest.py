from __future__ import annotations

import ctypes
from pathlib import Path
from typing import Any, Callable, Sequence
from unittest.mock import MagicMock

import numpy as np
import pytest

from trt_classifier.core.sample_params import SampleParams


# ---------------------------------------------------------------------------
# TensorRT stand-ins. Production modules import tensorrt optionally; tests
# swap their module-level ``trt`` for the fake below so no GPU is required.
# ---------------------------------------------------------------------------

FAKE_ENGINE_MAGIC = b"FAKE-ENGINE"

INPUT_SHAPE = (1, 150, 54)
OUTPUT_SHAPE = (1, 16)

_TRT_MODULES = (
    "trt_classifier.infrastructure.tensorrt_engine_loader",
    "trt_classifier.infrastructure.buffer_manager",
    "trt_classifier.infrastructure.engine_builder",
)


def float_view(address: int, count: int) -> np.ndarray:
    """numpy view over ``count`` float32 values at a raw (host) address."""
    return np.ctypeslib.as_array((ctypes.c_float * count).from_address(address))


def copy_leading_inputs(bindings: Sequence[int], input_count: int, output_count: int) -> None:
    """Fake network: the scores are the first ``output_count`` input values."""
    source = float_view(bindings[0], input_count)
    target = float_view(bindings[1], output_count)
    target[:] = source[:output_count]


class FakeExecutionContext:
    def __init__(self, engine: "FakeEngine") -> None:
        self.engine = engine
        self.executed_bindings: list[list[int]] = []
        self.input_shapes: dict[str, tuple[int, ...]] = {}

    def set_input_shape(self, name: str, shape: Sequence[int]) -> bool:
        self.input_shapes[name] = tuple(shape)
        return True

    def execute_v2(self, bindings: Sequence[int]) -> bool:
        self.executed_bindings.append(list(bindings))
        if not self.engine.execute_ok:
            return False
        if self.engine.compute is not None:
            self.engine.compute(bindings)
        return True


class FakeEngine:
    """Mimics the ICudaEngine I/O tensor queries used by the classifier."""

    def __init__(
        self,
        tensors: Sequence[tuple[str, str, tuple[int, ...], Any]] | None = None,
        compute: Callable[[Sequence[int]], None] | None = None,
        execute_ok: bool = True,
        context_ok: bool = True,
        serialized: bytes | None = FAKE_ENGINE_MAGIC + b"-serialized",
    ) -> None:
        self.tensors = list(
            tensors
            or [
                ("input", "INPUT", INPUT_SHAPE, np.float32),
                ("output", "OUTPUT", OUTPUT_SHAPE, np.float32),
            ]
        )
        if compute is None and tensors is None:
            compute = lambda bindings: copy_leading_inputs(bindings, 150 * 54, 16)  # noqa: E731
        self.compute = compute
        self.execute_ok = execute_ok
        self.context_ok = context_ok
        self.serialized = serialized
        self.contexts: list[FakeExecutionContext] = []

    def _lookup(self, name: str) -> tuple[str, str, tuple[int, ...], Any]:
        for entry in self.tensors:
            if entry[0] == name:
                return entry
        raise KeyError(name)

    @property
    def num_io_tensors(self) -> int:
        return len(self.tensors)

    def get_tensor_name(self, index: int) -> str:
        return self.tensors[index][0]

    def get_tensor_mode(self, name: str) -> str:
        return self._lookup(name)[1]

    def get_tensor_shape(self, name: str) -> tuple[int, ...]:
        return self._lookup(name)[2]

    def get_tensor_dtype(self, name: str) -> Any:
        return self._lookup(name)[3]

    def create_execution_context(self) -> FakeExecutionContext | None:
        if not self.context_ok:
            return None
        context = FakeExecutionContext(self)
        self.contexts.append(context)
        return context

    def serialize(self) -> bytes | None:
        return self.serialized


def make_fake_trt(engine_factory: Callable[[], FakeEngine] | None = None) -> MagicMock:
    factory = engine_factory or FakeEngine
    fake = MagicMock(name="tensorrt")
    fake.TensorIOMode.INPUT = "INPUT"
    fake.TensorIOMode.OUTPUT = "OUTPUT"
    fake.Logger.WARNING = "WARNING"
    fake.Logger.INFO = "INFO"
    fake.nptype.side_effect = lambda dtype: dtype
    fake.Runtime.return_value.deserialize_cuda_engine.side_effect = (
        lambda blob: factory() if bytes(blob).startswith(FAKE_ENGINE_MAGIC) else None
    )
    return fake


def install_fake_trt(monkeypatch: pytest.MonkeyPatch, fake: MagicMock) -> MagicMock:
    """Swap ``fake`` in for ``tensorrt`` in every module that talks to the runtime."""
    for module in _TRT_MODULES:
        monkeypatch.setattr(f"{module}.trt", fake)
    monkeypatch.setattr(f"{_TRT_MODULES[0]}._TRT_LOGGER", None)
    return fake


@pytest.fixture
def fake_trt(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    return install_fake_trt(monkeypatch, make_fake_trt())


# ---------------------------------------------------------------------------
# Files on disk
# ---------------------------------------------------------------------------

SCORES = np.array(
    [0.1, -2.0, 3.5, 0.0, 1.25, 3.5, -0.5, 7.75, 2.0, 7.0, -1.0, 0.3, 0.2, 5.0, 6.5, 1.0],
    dtype=np.float32,
)
EXPECTED_CLASS = 7


def write_input_matrix(path: Path, scores: np.ndarray = SCORES) -> np.ndarray:
    matrix = np.zeros(150 * 54, dtype=np.float32)
    matrix[: scores.size] = scores
    matrix[5 * 54 + 5] = 55.0
    path.parent.mkdir(parents=True, exist_ok=True)
    matrix.tofile(path)
    return matrix


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "data"
    write_input_matrix(directory / "input_matrix.bin")
    return directory


@pytest.fixture
def engine_file(tmp_path: Path) -> Path:
    path = tmp_path / "engines" / "model.trt"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(FAKE_ENGINE_MAGIC + b"\x00\x01\x02")
    return path


@pytest.fixture
def sample_params(tmp_path: Path, data_dir: Path, engine_file: Path) -> SampleParams:
    return SampleParams(
        engine_path=engine_file,
        onnx_file_name="model.onnx",
        input_file_name="input_matrix.bin",
        data_dirs=(str(data_dir),),
        device="cpu",
    )
