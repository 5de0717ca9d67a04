# game/rng.py
"""
Детерминированный ГПСЧ для открытия пачек.

Вся случайность открытия идёт через seeded_random(seed), поэтому пачку
можно воспроизвести по сиду: одинаковый сид -> одинаковая последовательность.
"""
from typing import Callable, Sequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619


def _fnv1a(seed: str) -> int:
    h = _FNV_OFFSET
    for ch in seed:
        h ^= ord(ch)
        h = (h * _FNV_PRIME) & _MASK32
    return h


def seeded_random(seed: str) -> Callable[[], float]:
    """Поток float в [0, 1) по строковому сиду"""
    state = _fnv1a(seed)
    if state == 0:
        # нулевое состояние xorshift никогда не покидает
        state = 0x9E3779B9

    def rand() -> float:
        nonlocal state
        h = state
        h = (h + (h << 13)) & _MASK32
        h ^= h >> 7
        h = (h + (h << 3)) & _MASK32
        h ^= h >> 17
        h = (h + (h << 5)) & _MASK32
        state = h
        return h / 4294967296

    return rand


def weighted_sample(items: Sequence[T], weights: Sequence[float], rand: Callable[[], float]) -> T:
    """Взвешенный выбор: веса не обязаны суммироваться в 1"""
    if not items:
        raise ValueError("weighted_sample() requires at least one item")

    total = sum(weights)
    r = rand() * total
    acc = 0.0
    for item, weight in zip(items, weights):
        acc += weight
        if r < acc:
            return item

    # погрешность округления: недобрали до total
    return items[-1]
