from __future__ import annotations

from pathlib import Path
from typing import Any

try:
    import tensorrt as trt
    # TRT registers the first logger handed to trt.Runtime() as a process-wide
    # singleton; it must outlive every runtime and engine created afterwards.
    _TRT_LOGGER: "trt.Logger | None" = trt.Logger(trt.Logger.WARNING)
except Exception:  # pragma: no cover
    trt = None  # type: ignore[assignment]
    _TRT_LOGGER = None

from logger.filtered_logger import LogChannel, debug as log_debug, info as log_info
from trt_classifier.core.errors import EngineLoadError
from trt_classifier.core.sample_params import NO_DLA_CORE


def trt_logger() -> Any:
    """Return the shared TensorRT logger, creating it lazily if the import-time one is missing."""
    global _TRT_LOGGER
    if trt is None:
        raise RuntimeError("TensorRT is not available")
    if _TRT_LOGGER is None:
        _TRT_LOGGER = trt.Logger(trt.Logger.WARNING)
    return _TRT_LOGGER


class TensorRTEngineLoader:
    """Deserializes a cached engine blob and exposes its I/O tensor metadata."""

    def __init__(self, engine_path: str | Path, dla_core: int = NO_DLA_CORE) -> None:
        self.engine_path = Path(engine_path)
        self.dla_core = int(dla_core)
        self._metadata: dict[str, Any] = {}
        self._runtime: Any | None = None
        self._engine: Any | None = None

    @property
    def engine(self) -> Any | None:
        return self._engine

    @property
    def runtime(self) -> Any | None:
        return self._runtime

    def load(self) -> dict[str, Any]:
        """Deserialize the engine and cache tensor names/shapes."""
        if not self._metadata:
            metadata: dict[str, Any] = {
                "path": str(self.engine_path),
                "available": False,
                "reason": "engine unavailable",
                "io_tensors": [],
            }
            if not self.engine_path.is_file():
                metadata["reason"] = f"engine file not found: {self.engine_path}"
                self._metadata = metadata
                return self._metadata
            if trt is None:
                metadata["reason"] = "tensorrt python package unavailable"
                self._metadata = metadata
                return self._metadata

            try:
                engine_bytes = self.engine_path.read_bytes()
            except OSError as exc:
                metadata["reason"] = f"cannot read engine file: {exc}"
                self._metadata = metadata
                return self._metadata
            log_debug(LogChannel.ENGINE, f"Read {len(engine_bytes)} bytes from {self.engine_path}")

            runtime = trt.Runtime(trt_logger())
            if self.dla_core != NO_DLA_CORE:
                runtime.DLA_core = self.dla_core
            engine = runtime.deserialize_cuda_engine(engine_bytes)
            if engine is None:
                metadata["reason"] = "deserialize_cuda_engine returned None"
                self._metadata = metadata
                return self._metadata

            self._runtime = runtime
            self._engine = engine
            metadata.update({"available": True, "reason": "ok", "io_tensors": describe_io_tensors(engine)})
            self._metadata = metadata
            log_info(LogChannel.ENGINE, f"Deserialized engine from {self.engine_path}")
        return self._metadata

    def require_engine(self) -> Any:
        """Return the deserialized engine or raise EngineLoadError with the load failure reason."""
        metadata = self.load()
        if not metadata["available"] or self._engine is None:
            raise EngineLoadError(metadata["reason"])
        return self._engine


def describe_io_tensors(engine: Any) -> list[dict[str, Any]]:
    io_tensors: list[dict[str, Any]] = []
    for index in range(int(engine.num_io_tensors)):
        name = engine.get_tensor_name(index)
        mode = engine.get_tensor_mode(name)
        io_tensors.append(
            {
                "name": name,
                "mode": "input" if mode == trt.TensorIOMode.INPUT else "output",
                "dtype": str(engine.get_tensor_dtype(name)),
                "shape": tuple(int(x) for x in engine.get_tensor_shape(name)),
            }
        )
    return io_tensors
