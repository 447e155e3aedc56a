from __future__ import annotations

from typing import Any

from logger.filtered_logger import (
    LogChannel,
    debug as log_debug,
    error as log_error,
    info as log_info,
)
from trt_classifier.core.classification import Classification, classify
from trt_classifier.core.sample_params import SampleParams
from trt_classifier.infrastructure.buffer_manager import BufferManager
from trt_classifier.infrastructure.engine_builder import build_engine_file
from trt_classifier.infrastructure.engine_serializer import serialize_engine
from trt_classifier.infrastructure.input_reader import load_input, locate_file
from trt_classifier.infrastructure.tensorrt_engine_loader import TensorRTEngineLoader
from trt_classifier.infrastructure.tensorrt_execution_context import TensorRTExecutionContext


class OnnxClassifierSample:
    """Loads the cached engine, runs one forward pass and reports the top class.

    Each public step returns a bool; failures are logged and never raised so the
    caller can report the run as failed and exit.
    """

    def __init__(self, params: SampleParams) -> None:
        self.params = params
        self._loader: TensorRTEngineLoader | None = None
        self._engine: Any | None = None
        self.last_result: Classification | None = None
        self.timings: dict[str, float] = {}

    @property
    def engine(self) -> Any | None:
        return self._engine

    def build(self) -> bool:
        """Obtain the engine: optionally build it from ONNX, then deserialize the cache file."""
        params = self.params
        try:
            if params.build_engine:
                onnx_path = locate_file(params.onnx_file_name, params.data_dirs)
                build_engine_file(onnx_path, params)
            loader = TensorRTEngineLoader(params.engine_path, params.dla_core)
            self._engine = loader.require_engine()
        except (RuntimeError, OSError) as exc:
            log_error(LogChannel.ENGINE, f"Failed to build the engine: {exc}")
            return False

        self._loader = loader
        for tensor in loader.load()["io_tensors"]:
            log_debug(LogChannel.ENGINE, f"{tensor['mode']} {tensor['name']}: shape={tensor['shape']} dtype={tensor['dtype']}")
        log_info(LogChannel.ENGINE, "Successfully built the engine")
        return True

    def infer(self) -> bool:
        """Allocate buffers, read the input, execute and verify the output."""
        if self._engine is None:
            log_error(LogChannel.ENGINE, "Failed to load the engine")
            return False
        if len(self.params.input_tensor_names) != 1:
            log_error(LogChannel.BUFFERS, f"Expected exactly one input tensor, got {self.params.input_tensor_names}")
            return False

        try:
            buffers = BufferManager(self._engine, self.params.batch_size, device=self.params.device)
        except RuntimeError as exc:
            log_error(LogChannel.BUFFERS, f"Failed in allocating buffers: {exc}")
            return False
        log_info(LogChannel.BUFFERS, "Successfully built the buffer")

        try:
            context = TensorRTExecutionContext(self._engine)
        except RuntimeError as exc:
            log_error(LogChannel.INFERENCE, f"Failed in creating an execution context: {exc}")
            return False
        log_info(LogChannel.INFERENCE, "Successfully built an execution context")

        try:
            self.process_input(buffers)
        except (OSError, KeyError) as exc:
            log_error(LogChannel.BUFFERS, f"Failed in reading input: {exc}")
            return False

        try:
            self.timings = context.execute(buffers)
        except RuntimeError as exc:
            log_error(LogChannel.INFERENCE, f"Failed in making execution: {exc}")
            return False

        try:
            self.last_result = self.verify_output(buffers)
        except (KeyError, ValueError) as exc:
            log_error(LogChannel.INFERENCE, f"Failed in reading output: {exc}")
            return False
        return True

    def process_input(self, buffers: BufferManager) -> int:
        """Read the raw input matrix into the host input buffer and log a few samples."""
        params = self.params
        input_path = locate_file(params.input_file_name, params.data_dirs)
        host = buffers.get_host_buffer(params.input_tensor_names[0])
        read = load_input(input_path, host, params.input_nbytes)

        flat = host.reshape(-1)
        width = params.input_width
        for offset in (0, 5 * width + 5, 10 * width + 10, 15 * width + 15):
            if offset < flat.size:
                log_info(LogChannel.BUFFERS, f"input[{offset}] = {flat[offset]}")
        return read

    def verify_output(self, buffers: BufferManager) -> Classification:
        """Log every raw class score and print the index of the largest one."""
        output = buffers.get_host_buffer(self.params.output_tensor_names[0]).reshape(-1)
        result = classify(output, self.params.output_size)

        log_info(LogChannel.INFERENCE, "Output:")
        for index, score in enumerate(result.scores):
            log_info(LogChannel.INFERENCE, f"Probability of class {index} before normalization is: {score}")
        print(f"OUTPUT: {result.index}")
        return result

    def serialize(self) -> bool:
        """Write the loaded engine back to its cache path."""
        if self._engine is None:
            log_error(LogChannel.ENGINE, "No engine to serialize")
            return False
        try:
            written = serialize_engine(self._engine, self.params.engine_path)
        except (RuntimeError, OSError) as exc:
            log_error(LogChannel.ENGINE, f"Failed to serialize the engine: {exc}")
            return False
        log_info(LogChannel.ENGINE, f"Successfully serialized the engine ({written} bytes)")
        return True
