from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from trt_classifier.enums import Precision


NO_DLA_CORE = -1


@dataclass(frozen=True)
class SampleParams:
    """Everything a single classifier run needs, fixed before the engine is touched."""

    engine_path: Path
    onnx_file_name: str
    input_file_name: str
    data_dirs: tuple[str, ...]
    input_tensor_names: tuple[str, ...] = ("input",)
    output_tensor_names: tuple[str, ...] = ("output",)
    batch_size: int = 1
    input_height: int = 150
    input_width: int = 54
    output_size: int = 16
    dla_core: int = NO_DLA_CORE
    int8: bool = False
    fp16: bool = False
    workspace_bytes: int = 16 * 1024 * 1024
    device: str = "cuda"
    build_engine: bool = False
    serialize_engine: bool = False
    name: str = field(default="TensorRT.onnx_classifier", compare=False)

    @property
    def input_volume(self) -> int:
        return self.input_height * self.input_width

    @property
    def input_nbytes(self) -> int:
        # float32 elements
        return self.input_volume * 4

    @property
    def precision(self) -> Precision:
        if self.int8:
            return Precision.INT8
        if self.fp16:
            return Precision.FP16
        return Precision.FP32

    @property
    def uses_dla(self) -> bool:
        return self.dla_core >= 0
