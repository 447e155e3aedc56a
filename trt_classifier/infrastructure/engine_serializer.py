"""Write engine blobs back to the on-disk cache."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Union

from trt_classifier.core.errors import ClassifierError

_log = logging.getLogger(__name__)


def write_engine_bytes(data: bytes, path: Union[str, Path]) -> int:
    """Write a serialized engine to ``path``, creating parent directories. Returns bytes written."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    raw = bytes(data)
    target.write_bytes(raw)
    _log.debug("Wrote %d engine bytes to '%s'", len(raw), target)
    return len(raw)


def serialize_engine(engine: Any, path: Union[str, Path]) -> int:
    """Serialize a deserialized engine back to its cache path."""
    host_memory = engine.serialize()
    if host_memory is None:
        raise ClassifierError("engine.serialize returned None")
    return write_engine_bytes(bytes(host_memory), path)
