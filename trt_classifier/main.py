from __future__ import annotations

import logging
import sys
from typing import Sequence

from env_utils import parse_bool_env
from logger.filtered_logger import LogChannel, debug as log_debug, error as log_error, info as log_info
from logger.run_report import EXIT_FAILURE, EXIT_SUCCESS, RunReport
from trt_classifier.application.cli import PROG, InvalidArgumentsError, parse_args, print_help_info
from trt_classifier.application.inference_driver import OnnxClassifierSample
from trt_classifier.application.sample_factory import initialize_sample_params
from trt_classifier.config.log_config import apply_log_config


def main(argv: Sequence[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if parse_bool_env("EXTREME_DEBUG", "0") else logging.INFO,
        format="[trt-classifier] %(message)s",
    )
    apply_log_config()

    try:
        args = parse_args(argv)
    except InvalidArgumentsError as exc:
        log_error(LogChannel.GLOBAL, f"Invalid arguments: {exc}")
        print_help_info()
        return EXIT_FAILURE
    if args.help:
        print_help_info()
        return EXIT_SUCCESS
    log_debug(LogChannel.GLOBAL, f"argc={len(argv) + 1} argv={[PROG, *argv]}")

    try:
        params = initialize_sample_params(args)
    except (OSError, ValueError) as exc:
        log_error(LogChannel.GLOBAL, f"Invalid sample configuration: {exc}")
        return EXIT_FAILURE

    report = RunReport.define(params.name, [PROG, *argv])
    report.start()

    sample = OnnxClassifierSample(params)
    log_info(LogChannel.GLOBAL, "Building and running a GPU inference engine for the ONNX classifier")

    if not sample.build():
        return report.failed()
    if not sample.infer():
        return report.failed()

    if params.serialize_engine and not sample.serialize():
        log_error(LogChannel.ENGINE, "Failed to serialize")

    return report.passed()


if __name__ == "__main__":
    sys.exit(main())
