from __future__ import annotations

import time
from typing import Any, Sequence

from logger.filtered_logger import LogChannel, debug as log_debug
from trt_classifier.core.errors import InferenceExecutionError
from trt_classifier.infrastructure.buffer_manager import BufferManager


def run_inference(context: Any, bindings: Sequence[int]) -> bool:
    """Invoke the synchronous ``execute_v2`` entry point; True on success."""
    return bool(context.execute_v2(list(bindings)))


class TensorRTExecutionContext:
    """Wraps one TensorRT execution context for synchronous, single-shot inference."""

    def __init__(self, engine: Any) -> None:
        self._engine = engine
        self._context = engine.create_execution_context()
        if self._context is None:
            raise InferenceExecutionError("create_execution_context returned None")

    @property
    def context(self) -> Any:
        return self._context

    def execute(self, buffers: BufferManager) -> dict[str, float]:
        """Copy inputs to device, run the engine, copy outputs back.

        Returns per-stage wall times in milliseconds; raises
        InferenceExecutionError when the runtime reports failure.
        """
        for buf in buffers.inputs():
            if buf.dynamic and not self._context.set_input_shape(buf.name, buf.shape):
                raise InferenceExecutionError(f"set_input_shape rejected {buf.shape} for '{buf.name}'")

        h2d_start_ns = time.perf_counter_ns()
        buffers.copy_input_to_device()
        h2d_ms = (time.perf_counter_ns() - h2d_start_ns) / 1_000_000.0

        infer_start_ns = time.perf_counter_ns()
        ok = run_inference(self._context, buffers.get_device_bindings())
        infer_ms = (time.perf_counter_ns() - infer_start_ns) / 1_000_000.0
        if not ok:
            raise InferenceExecutionError("execute_v2 failed")

        d2h_start_ns = time.perf_counter_ns()
        buffers.copy_output_to_host()
        d2h_ms = (time.perf_counter_ns() - d2h_start_ns) / 1_000_000.0

        log_debug(LogChannel.INFERENCE, f"h2d={h2d_ms:.3f}ms infer={infer_ms:.3f}ms d2h={d2h_ms:.3f}ms")
        return {"h2d_ms": h2d_ms, "infer_ms": infer_ms, "d2h_ms": d2h_ms}
