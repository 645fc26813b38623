"""Partitioning of tokenized strings into translation batches."""

from __future__ import annotations

from typing import List, Sequence

from .structures import Batch

DEFAULT_BATCH_SIZE = 15


class BatchBuilder:
    """Splits an ordered list of strings into contiguous fixed-size batches."""

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self.batch_size = max(1, batch_size)

    def build(self, texts: Sequence[str]) -> List[Batch]:
        batches: List[Batch] = []
        for batch_id, start in enumerate(range(0, len(texts), self.batch_size), start=1):
            batches.append(
                Batch(
                    batch_id=batch_id,
                    start=start,
                    texts=list(texts[start : start + self.batch_size]),
                )
            )
        return batches
