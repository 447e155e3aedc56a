from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

try:
    import tensorrt as trt
except Exception:  # pragma: no cover
    trt = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover
    torch = None  # type: ignore[assignment]

from logger.filtered_logger import LogChannel, debug as log_debug
from trt_classifier.core.errors import BufferAllocationError


@dataclass
class TensorBuffer:
    """Host/device memory pair backing one engine I/O tensor."""

    name: str
    is_input: bool
    shape: tuple[int, ...]
    dynamic: bool
    host: np.ndarray
    device: Any

    @property
    def nbytes(self) -> int:
        return int(self.host.nbytes)


class BufferManager:
    """Allocates one host/device buffer pair per engine I/O tensor.

    Host memory is a numpy array, device memory a torch tensor; bindings are the
    device addresses in engine I/O order, ready for ``execute_v2``.
    """

    def __init__(self, engine: Any, batch_size: int = 1, device: str = "cuda") -> None:
        if trt is None:
            raise RuntimeError("TensorRT is not available")
        if torch is None:
            raise BufferAllocationError("torch is not available for device allocation")
        self.batch_size = int(batch_size)
        self.device = torch.device(device)
        if self.device.type == "cuda" and not torch.cuda.is_available():
            raise BufferAllocationError("CUDA device requested but torch.cuda is not available")

        self._buffers: dict[str, TensorBuffer] = {}
        for index in range(int(engine.num_io_tensors)):
            name = engine.get_tensor_name(index)
            self._buffers[name] = self._allocate(engine, name)

    def _allocate(self, engine: Any, name: str) -> TensorBuffer:
        is_input = engine.get_tensor_mode(name) == trt.TensorIOMode.INPUT
        dtype = np.dtype(trt.nptype(engine.get_tensor_dtype(name)))
        declared = tuple(int(x) for x in engine.get_tensor_shape(name))
        shape = self._resolve_shape(name, declared)

        t_dtype = torch.from_numpy(np.zeros(1, dtype=dtype)).dtype
        try:
            host = np.empty(shape, dtype=dtype)
            device_tensor = torch.empty(shape, dtype=t_dtype, device=self.device)
        except (RuntimeError, MemoryError, ValueError) as exc:
            raise BufferAllocationError(f"failed to allocate buffers for {name} {shape}: {exc}") from exc

        log_debug(
            LogChannel.BUFFERS,
            f"{'input' if is_input else 'output'} {name}: shape={shape} dtype={dtype} bytes={host.nbytes}",
        )
        return TensorBuffer(
            name=name,
            is_input=is_input,
            shape=shape,
            dynamic=any(dim < 0 for dim in declared),
            host=host,
            device=device_tensor,
        )

    def _resolve_shape(self, name: str, declared: tuple[int, ...]) -> tuple[int, ...]:
        shape = list(declared)
        if shape and shape[0] < 0:
            shape[0] = self.batch_size
        if any(dim < 0 for dim in shape):
            raise BufferAllocationError(f"unresolved dynamic dimension for {name}: {declared}")
        return tuple(shape)

    @property
    def tensor_names(self) -> tuple[str, ...]:
        return tuple(self._buffers)

    def buffer(self, name: str) -> TensorBuffer:
        try:
            return self._buffers[name]
        except KeyError:
            raise KeyError(f"engine has no tensor named {name!r}; known: {', '.join(self._buffers)}") from None

    def get_host_buffer(self, name: str) -> np.ndarray:
        return self.buffer(name).host

    def get_device_buffer(self, name: str) -> Any:
        return self.buffer(name).device

    def get_device_bindings(self) -> list[int]:
        return [int(buf.device.data_ptr()) for buf in self._buffers.values()]

    def inputs(self) -> list[TensorBuffer]:
        return [buf for buf in self._buffers.values() if buf.is_input]

    def outputs(self) -> list[TensorBuffer]:
        return [buf for buf in self._buffers.values() if not buf.is_input]

    def copy_input_to_device(self) -> None:
        for buf in self.inputs():
            buf.device.copy_(torch.from_numpy(buf.host))

    def copy_output_to_host(self) -> None:
        for buf in self.outputs():
            np.copyto(buf.host, buf.device.detach().cpu().numpy())
