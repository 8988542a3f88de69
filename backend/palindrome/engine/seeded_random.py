from typing import Callable

_MASK = 0xFFFFFFFF
_SCALE = 4294967296.0


def _hash_seed(seed: str) -> int:
    h = 0
    # UTF-16 code units, so a JS client hashing the same string agrees
    data = seed.encode('utf-16-le')
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (31 * h + unit) & _MASK
    return h


def create_seeded_random(seed: str) -> Callable[[], float]:
    """Return a generator yielding floats in [0, 1) determined by ``seed``.

    Each instance owns its state; two instances built from the same seed
    produce the same sequence.
    """
    h = _hash_seed(seed)

    def next_value() -> float:
        nonlocal h
        h = ((h ^ (h >> 15)) * (h | 1)) & _MASK
        return h / _SCALE

    return next_value
