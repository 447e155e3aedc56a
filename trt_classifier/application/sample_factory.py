from __future__ import annotations

from pathlib import Path
from typing import Any

from env_utils import env_path
from logger.filtered_logger import LogChannel, info as log_info
from trt_classifier.application.cli import CliArgs
from trt_classifier.config import load_sample_config
from trt_classifier.core.sample_params import SampleParams


ENGINE_PATH_ENV_VAR = "TRT_CLASSIFIER_ENGINE_PATH"

_REQUIRED_SECTIONS = ("engine", "input", "output")


def _section(config: dict[str, Any], key: str) -> dict[str, Any]:
    value = config.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"sample config section '{key}' must be a mapping")
    return value


def _positive_int(section: dict[str, Any], key: str, label: str) -> int:
    if key not in section:
        raise ValueError(f"{label} is missing from the sample config")
    try:
        value = int(section[key])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{label} must be an integer, got {section[key]!r}") from exc
    if value <= 0:
        raise ValueError(f"{label} must be positive, got {value}")
    return value


def initialize_sample_params(args: CliArgs, config: dict[str, Any] | None = None) -> SampleParams:
    """Merge command-line flags over the YAML defaults into a frozen SampleParams."""
    if config is None:
        config = load_sample_config()
    missing = [key for key in _REQUIRED_SECTIONS if key not in config]
    if missing:
        raise ValueError(f"sample config is missing required sections: {', '.join(missing)}")
    engine_cfg = _section(config, "engine")
    input_cfg = _section(config, "input")
    output_cfg = _section(config, "output")

    if args.data_dirs:
        log_info(LogChannel.GLOBAL, "Using directory provided by the user")
        data_dirs = tuple(args.data_dirs)
    else:
        log_info(LogChannel.GLOBAL, "Using default directory")
        data_dirs = tuple(str(d) for d in config.get("data_dirs") or ())

    engine_path = env_path(ENGINE_PATH_ENV_VAR, engine_cfg.get("cache_path"))
    if not engine_path:
        raise ValueError("no engine cache path configured")

    return SampleParams(
        engine_path=Path(engine_path),
        onnx_file_name=str(engine_cfg.get("onnx_file", "")),
        input_file_name=str(input_cfg.get("file", "input_matrix.bin")),
        data_dirs=data_dirs,
        input_tensor_names=(str(input_cfg.get("tensor", "input")),),
        output_tensor_names=(str(output_cfg.get("tensor", "output")),),
        batch_size=int(config.get("batch_size", 1)),
        input_height=_positive_int(input_cfg, "height", "input height"),
        input_width=_positive_int(input_cfg, "width", "input width"),
        output_size=_positive_int(output_cfg, "size", "output size"),
        dla_core=args.use_dla_core,
        int8=args.int8,
        fp16=args.fp16,
        workspace_bytes=int(engine_cfg.get("workspace_mib", 16)) * 1024 * 1024,
        device=str(config.get("device", "cuda")),
        build_engine=args.build,
        serialize_engine=args.serialize or bool(engine_cfg.get("serialize_after_load", False)),
        name=str(config.get("name", "TensorRT.onnx_classifier")),
    )
