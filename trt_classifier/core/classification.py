from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Classification:
    index: int
    score: float
    scores: tuple[float, ...]


def select_argmax(values: Sequence[float], count: int | None = None) -> int:
    """Return the index of the largest of the first ``count`` values.

    The scan uses a strict ``>`` comparison so the first occurrence of the
    maximum wins; NaN entries never replace the running maximum.
    """
    n = len(values) if count is None else int(count)
    if n <= 0:
        raise ValueError("select_argmax needs at least one value")
    if n > len(values):
        raise ValueError(f"requested {n} values but only {len(values)} are available")

    current_max = values[0]
    best_index = 0
    for index in range(1, n):
        if values[index] > current_max:
            current_max = values[index]
            best_index = index
    return best_index


def classify(values: Sequence[float], count: int | None = None) -> Classification:
    """Pick the top class from raw, unnormalized scores."""
    n = len(values) if count is None else int(count)
    index = select_argmax(values, n)
    scores = tuple(float(values[i]) for i in range(n))
    return Classification(index=index, score=scores[index], scores=scores)
