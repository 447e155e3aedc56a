from __future__ import annotations


class ClassifierError(RuntimeError):
    """Base class for failures that abort a classifier run."""


class EngineLoadError(ClassifierError):
    """The engine file could not be read or the runtime rejected the blob."""


class EngineBuildError(ClassifierError):
    """The ONNX model could not be parsed or the builder returned no engine."""


class BufferAllocationError(ClassifierError):
    """Host or device memory for an engine tensor could not be allocated."""


class InferenceExecutionError(ClassifierError):
    """The execution context could not be created or execution reported failure."""
