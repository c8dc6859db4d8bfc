from __future__ import annotations

from datetime import timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tablelog.core.batching import BatchAccumulator
from tablelog.core.events import LogEvent
from tablelog.core.keys import DefaultBatchKeyGenerator
from tablelog.testing import BASE_TIME, create_log_event

pytestmark = pytest.mark.property

# Offsets in milliseconds spanning a handful of minute buckets
offsets = st.lists(
    st.integers(min_value=0, max_value=5 * 60 * 1000), min_size=0, max_size=400
)
limits = st.integers(min_value=1, max_value=100)


def _events(millis: list[int]) -> list[LogEvent]:
    return [
        create_log_event(timestamp=BASE_TIME + timedelta(milliseconds=ms), Index=i)
        for i, ms in enumerate(millis)
    ]


@given(millis=offsets, limit=limits)
@settings(max_examples=200)
def test_sub_batches_respect_partition_and_limit(millis: list[int], limit: int) -> None:
    acc = BatchAccumulator(DefaultBatchKeyGenerator(), limit)
    for batch in acc.group(_events(millis)):
        assert 1 <= len(batch) <= limit
        assert {r.partition_key for r in batch.records} == {batch.partition_key}


@given(millis=offsets, limit=limits)
@settings(max_examples=200)
def test_sub_batches_concatenate_to_input(millis: list[int], limit: int) -> None:
    events = _events(millis)
    acc = BatchAccumulator(DefaultBatchKeyGenerator(), limit)
    flattened = [e for b in acc.group(events) for e in b.events]
    assert flattened == events


@given(millis=offsets.map(sorted), limit=limits)
@settings(max_examples=200)
def test_sorted_input_gives_minimal_sub_batch_count(
    millis: list[int], limit: int
) -> None:
    events = _events(millis)
    keys = DefaultBatchKeyGenerator()
    per_partition: dict[str, int] = {}
    for event in events:
        pk = keys.generate_partition_key(event)
        per_partition[pk] = per_partition.get(pk, 0) + 1
    expected = sum(-(-n // limit) for n in per_partition.values())

    acc = BatchAccumulator(DefaultBatchKeyGenerator(), limit)
    assert len(list(acc.group(events))) == expected


@given(cycles=st.lists(offsets, min_size=1, max_size=4), limit=limits)
@settings(max_examples=100)
def test_row_keys_unique_within_partition(
    cycles: list[list[int]], limit: int
) -> None:
    # Offsets repeat within and across cycles, and partitions interleave
    acc = BatchAccumulator(DefaultBatchKeyGenerator(), limit)
    seen: set[tuple[str, str]] = set()
    batches = [b for millis in cycles for b in acc.group(_events(millis))]
    for batch in batches:
        for record in batch.records:
            key = (record.partition_key, record.row_key)
            assert key not in seen
            seen.add(key)
