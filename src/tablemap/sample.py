"""Random sparse dataset generator, for demos and benchmarks."""

from __future__ import annotations

import random
import string
from collections.abc import Iterator

from tablemap.core.interfaces import IRowStore
from tablemap.core.models import Record, RecordKey

_ALPHABET = string.ascii_letters + string.digits


def random_str(rng: random.Random, length: int) -> str:
    return "".join(rng.choices(_ALPHABET, k=length))


def iter_random_records(
    *,
    items: int,
    columns: int,
    value_len: int = 10,
    seed: int | None = None,
) -> Iterator[tuple[RecordKey, Record]]:
    """Yield `items` records drawn from a pool of `columns` column names.

    Each record draws `columns` column indices with replacement, so it ends
    up with a random subset (about 63%) of the pool, in random order.
    """
    rng = random.Random(seed)
    names = [f"C/{random_str(rng, 5)}" for _ in range(columns)]
    seen_keys: set[str] = set()
    while len(seen_keys) < items:
        key = random_str(rng, 5)
        if key in seen_keys:
            continue
        seen_keys.add(key)
        record: Record = {}
        for _ in range(columns):
            name = names[rng.randrange(columns)]
            if name not in record:
                record[name] = random_str(rng, value_len)
        yield key, record


def generate_random_dataset(
    store: IRowStore,
    *,
    items: int = 1000,
    columns: int = 400,
    value_len: int = 10,
    seed: int | None = None,
) -> int:
    """Fill `store` with random records. Returns how many were written."""
    records = iter_random_records(items=items, columns=columns, value_len=value_len, seed=seed)
    put_many = getattr(store, "put_many", None)
    if put_many is not None:
        return put_many(records)
    n = 0
    for key, record in records:
        store.put(key, record)
        n += 1
    return n
