from __future__ import annotations

from pathlib import Path
from typing import Any

try:
    import tensorrt as trt
except Exception:  # pragma: no cover
    trt = None  # type: ignore[assignment]

from logger.filtered_logger import LogChannel, error as log_error, info as log_info, warning as log_warning
from trt_classifier.core.errors import EngineBuildError
from trt_classifier.core.sample_params import SampleParams
from trt_classifier.infrastructure.engine_serializer import write_engine_bytes


INT8_TENSOR_SCALE = 127.0


def _explicit_batch_flag() -> int:
    flag = getattr(trt.NetworkDefinitionCreationFlag, "EXPLICIT_BATCH", None)
    if flag is None:
        return 0
    return 1 << int(flag)


def set_all_tensor_scales(network: Any, in_scale: float = INT8_TENSOR_SCALE, out_scale: float = INT8_TENSOR_SCALE) -> None:
    """Give every network tensor without a dynamic range a symmetric one.

    Placeholder ranges only make INT8 engines buildable without a calibrator;
    accuracy needs real calibration data.
    """
    for layer_index in range(network.num_layers):
        layer = network.get_layer(layer_index)
        for input_index in range(layer.num_inputs):
            tensor = layer.get_input(input_index)
            if tensor is not None and tensor.dynamic_range is None:
                tensor.dynamic_range = (-in_scale, in_scale)
        for output_index in range(layer.num_outputs):
            tensor = layer.get_output(output_index)
            if tensor is None or tensor.dynamic_range is not None:
                continue
            # pooling keeps the input range
            scale = in_scale if layer.type == trt.LayerType.POOLING else out_scale
            tensor.dynamic_range = (-scale, scale)


def configure_precision(config: Any, network: Any, params: SampleParams) -> None:
    if params.fp16:
        config.set_flag(trt.BuilderFlag.FP16)
    if params.int8:
        config.set_flag(trt.BuilderFlag.INT8)
        set_all_tensor_scales(network)


def enable_dla(builder: Any, config: Any, dla_core: int, allow_gpu_fallback: bool = True) -> None:
    """Route supported layers to DLA core ``dla_core``; no-op for a negative index."""
    if dla_core < 0:
        return
    if int(builder.num_DLA_cores) == 0:
        raise EngineBuildError(f"Trying to use DLA core {dla_core} on a platform that doesn't have any DLA cores")
    if allow_gpu_fallback:
        config.set_flag(trt.BuilderFlag.GPU_FALLBACK)
    if not config.get_flag(trt.BuilderFlag.INT8):
        # DLA has no FP32 mode
        config.set_flag(trt.BuilderFlag.FP16)
    config.default_device_type = trt.DeviceType.DLA
    config.DLA_core = dla_core
    log_info(LogChannel.ENGINE, f"Using DLA core {dla_core} (GPU fallback {'on' if allow_gpu_fallback else 'off'})")


def build_serialized_engine(onnx_path: str | Path, params: SampleParams) -> bytes:
    """Parse an ONNX model and ask the TensorRT builder for a serialized engine."""
    if trt is None:
        raise RuntimeError("TensorRT is not available")

    logger = trt.Logger(trt.Logger.INFO)
    try:
        builder = trt.Builder(logger)
    except Exception as exc:
        raise EngineBuildError(f"TensorRT Builder creation failed: {exc}") from exc

    network = builder.create_network(_explicit_batch_flag())
    config = builder.create_builder_config()
    parser = trt.OnnxParser(network, logger)

    onnx_abs = Path(onnx_path).resolve()
    if not parser.parse_from_file(str(onnx_abs)):
        for index in range(parser.num_errors):
            log_error(LogChannel.ENGINE, str(parser.get_error(index)))
        raise EngineBuildError(f"Failed to parse the ONNX file {onnx_abs}")

    config.set_memory_pool_limit(trt.MemoryPoolType.WORKSPACE, params.workspace_bytes)
    configure_precision(config, network, params)
    enable_dla(builder, config, params.dla_core)
    if params.int8:
        log_warning(LogChannel.ENGINE, f"INT8 uses placeholder dynamic range +/-{INT8_TENSOR_SCALE:g} on every tensor")

    log_info(LogChannel.ENGINE, f"Building engine from {onnx_abs} ({params.precision.value})")
    serialized = builder.build_serialized_network(network, config)
    if serialized is None:
        raise EngineBuildError("build_serialized_network returned None")
    return bytes(serialized)


def build_engine_file(onnx_path: str | Path, params: SampleParams) -> int:
    """Build the engine and store it at ``params.engine_path``. Returns bytes written."""
    written = write_engine_bytes(build_serialized_engine(onnx_path, params), params.engine_path)
    log_info(LogChannel.ENGINE, f"Engine saved to {params.engine_path} ({written} bytes)")
    return written
