"""Run a cached TensorRT engine over a raw float32 input and report the top class."""

__version__ = "0.1.0"
