from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np

from logger.filtered_logger import LogChannel, debug as log_debug


MAX_SEARCH_DEPTH = 10


def locate_file(file_name: str, data_dirs: Sequence[str | Path], max_depth: int = MAX_SEARCH_DEPTH) -> Path:
    """Find ``file_name`` in the data directories.

    Relative directories are also tried under up to ``max_depth`` parent
    levels (``../data``, ``../../data``, ...), so the tool works from a build
    or checkout subdirectory.
    """
    searched: list[str] = []
    for data_dir in data_dirs:
        base = Path(data_dir)
        prefixes = [Path()]
        if not base.is_absolute():
            prefixes += [Path(*([".."] * depth)) for depth in range(1, max_depth + 1)]
        for prefix in prefixes:
            candidate = prefix / base / file_name
            searched.append(str(candidate.parent))
            if candidate.is_file():
                log_debug(LogChannel.GLOBAL, f"Located {file_name} at {candidate}")
                return candidate
    raise FileNotFoundError(
        f"Could not find {file_name} in data directories: {', '.join(str(d) for d in data_dirs)}"
        f" (searched {len(searched)} locations)"
    )


def load_input(path: str | Path, host_buffer: np.ndarray, nbytes: int) -> int:
    """Read up to ``nbytes`` raw bytes from ``path`` straight into ``host_buffer``.

    There is no header and no format check. A short file leaves the tail of the
    buffer untouched. Returns the number of bytes actually read.
    """
    raw = host_buffer.view(np.uint8).reshape(-1)
    with Path(path).open("rb") as stream:
        read = stream.readinto(memoryview(raw)[:nbytes]) or 0
    log_debug(LogChannel.BUFFERS, f"Read {read} of {nbytes} bytes from {path}")
    return read
