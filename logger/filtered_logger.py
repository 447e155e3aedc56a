"""Console logger for trt-classifier, printed as ``[LEVEL] [CHANNEL] message``.

INFO, WARN and ERROR always print. DEBUG prints per channel:

* ``GLOBAL``: argument parsing, data directories and the run lifecycle
  (``EXTREME_DEBUG`` turns on debug output for every channel).
* ``ENGINE``: engine loading, building, ONNX parser errors and serialization
  (``ENGINE_DEBUG_LOGS``).
* ``BUFFERS``: host and device buffer allocation, the input file read and the
  sampled input values (``BUFFERS_DEBUG_LOGS``).
* ``INFERENCE``: execution context creation, stage timings and class scores
  (``INFERENCE_DEBUG_LOGS``).

Flags come from the environment at import time; ``configure_logger`` applies
the ``channels`` section of ``config/log.yaml`` over them.
"""

from enum import Enum

from env_utils import parse_bool_env


class LogChannel(Enum):
    GLOBAL = "GLOBAL"
    ENGINE = "ENGINE"
    BUFFERS = "BUFFERS"
    INFERENCE = "INFERENCE"


class LogLevel(Enum):
    INFO = "INFO"
    WARNING = "WARN"
    ERROR = "ERROR"
    DEBUG = "DEBUG"


class FilteredLogger:
    def __init__(self):
        self.extreme_debug = parse_bool_env('EXTREME_DEBUG', '0')
        self.engine_debug = parse_bool_env('ENGINE_DEBUG_LOGS', '0')
        self.buffers_debug = parse_bool_env('BUFFERS_DEBUG_LOGS', '0')
        self.inference_debug = parse_bool_env('INFERENCE_DEBUG_LOGS', '0')

    def configure(self, *, extreme_debug=None, engine_debug=None, buffers_debug=None, inference_debug=None):
        if extreme_debug is not None:
            self.extreme_debug = extreme_debug
        if engine_debug is not None:
            self.engine_debug = engine_debug
        if buffers_debug is not None:
            self.buffers_debug = buffers_debug
        if inference_debug is not None:
            self.inference_debug = inference_debug

    def should_log_debug(self, channel):
        if self.extreme_debug:
            return True
        if channel == LogChannel.ENGINE:
            return self.engine_debug
        if channel == LogChannel.BUFFERS:
            return self.buffers_debug
        if channel == LogChannel.INFERENCE:
            return self.inference_debug
        return False

    def _print(self, level, channel, message):
        prefix = f"[{level.value}]"
        channel_tag = f"[{channel.value}]"
        for line in str(message).splitlines():
            print(f"{prefix} {channel_tag} {line}")

    def info(self, channel, message):
        self._print(LogLevel.INFO, channel, message)

    def warning(self, channel, message):
        self._print(LogLevel.WARNING, channel, message)

    def error(self, channel, message):
        self._print(LogLevel.ERROR, channel, message)

    def debug(self, channel, message):
        if not self.should_log_debug(channel):
            return
        self._print(LogLevel.DEBUG, channel, message)


_shared_logger = FilteredLogger()


def configure_logger(**kwargs):
    _shared_logger.configure(**kwargs)


def info(channel, message):
    _shared_logger.info(channel, message)


def warning(channel, message):
    _shared_logger.warning(channel, message)


def error(channel, message):
    _shared_logger.error(channel, message)


def debug(channel, message):
    _shared_logger.debug(channel, message)
