import math

import pytest

from babeljson.batching import BatchBuilder


@pytest.mark.parametrize("count,size", [(0, 3), (1, 3), (3, 3), (7, 3), (16, 15), (5, 1)])
def test_batches_are_contiguous_and_bounded(count, size):
    texts = [f"s{i}" for i in range(count)]

    batches = BatchBuilder(size).build(texts)

    assert len(batches) == math.ceil(count / size)
    assert all(len(batch) <= size for batch in batches)
    assert [text for batch in batches for text in batch.texts] == texts
    assert [batch.batch_id for batch in batches] == list(range(1, len(batches) + 1))
    assert [batch.start for batch in batches] == list(range(0, count, size))


def test_batch_size_is_at_least_one():
    assert len(BatchBuilder(0).build(["a", "b"])) == 2
