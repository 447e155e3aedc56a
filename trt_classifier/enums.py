from enum import Enum


class Precision(Enum):
    """Enumerates the arithmetic precisions the engine builder can enable."""

    FP32 = "FP32"
    FP16 = "FP16"
    INT8 = "INT8"
