"""
Goods catalogue and the fixed-size agent inventory.

Goods form a small closed enum; the integer value of each member is its slot
in every inventory array, so iteration order is always enum order.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Iterator

import numpy as np


class GoodType(IntEnum):
    """Tradeable goods, in canonical order."""

    GRAIN = 0
    TIMBER = 1
    IRON_ORE = 2
    STONE = 3
    FISH = 4
    HERBS = 5
    GEMS = 6
    FURS = 7
    COAL = 8
    EXOTICS = 9
    TOOLS = 10
    WEAPONS = 11
    CLOTHING = 12
    MEDICINE = 13
    LUXURIES = 14

    @property
    def key(self) -> str:
        return self.name.lower()

    @classmethod
    def from_key(cls, key: str) -> GoodType:
        try:
            return cls[key.upper()]
        except KeyError:
            raise ValueError(f"Unknown good: {key!r}") from None


NUM_GOODS = len(GoodType)

FOOD_GOODS: tuple[GoodType, ...] = (GoodType.FISH, GoodType.GRAIN)

# Production-cost floor of each good, in crowns.
BASE_PRICES: dict[GoodType, float] = {
    GoodType.GRAIN: 2,
    GoodType.TIMBER: 3,
    GoodType.IRON_ORE: 4,
    GoodType.STONE: 3,
    GoodType.FISH: 2,
    GoodType.HERBS: 5,
    GoodType.GEMS: 15,
    GoodType.FURS: 6,
    GoodType.COAL: 4,
    GoodType.EXOTICS: 20,
    GoodType.TOOLS: 10,
    GoodType.WEAPONS: 15,
    GoodType.CLOTHING: 8,
    GoodType.MEDICINE: 12,
    GoodType.LUXURIES: 25,
}


class Inventory:
    """Non-negative integer quantities, one slot per ``GoodType``."""

    __slots__ = ("_counts",)

    def __init__(self, counts: np.ndarray | list[int] | None = None) -> None:
        if counts is None:
            self._counts = np.zeros(NUM_GOODS, dtype=np.int64)
        else:
            arr = np.asarray(counts, dtype=np.int64)
            if arr.shape != (NUM_GOODS,):
                raise ValueError(f"Inventory needs {NUM_GOODS} slots, got shape {arr.shape}")
            self._counts = np.maximum(arr, 0).copy()

    def __getitem__(self, good: GoodType) -> int:
        return int(self._counts[good])

    def __setitem__(self, good: GoodType, qty: int) -> None:
        self._counts[good] = max(0, int(qty))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Inventory):
            return NotImplemented
        return bool(np.array_equal(self._counts, other._counts))

    def __repr__(self) -> str:
        held = {g.key: q for g, q in self.items() if q}
        return f"Inventory({held})"

    def add(self, good: GoodType, qty: int = 1) -> None:
        if qty > 0:
            self._counts[good] += qty

    def remove(self, good: GoodType, qty: int = 1) -> bool:
        """Take ``qty`` units; returns False and changes nothing if short."""
        if self._counts[good] < qty:
            return False
        self._counts[good] -= qty
        return True

    def has(self, good: GoodType, qty: int = 1) -> bool:
        return bool(self._counts[good] >= qty)

    def food(self) -> int:
        return int(sum(self._counts[g] for g in FOOD_GOODS))

    def total(self) -> int:
        return int(self._counts.sum())

    def items(self) -> Iterator[tuple[GoodType, int]]:
        for good in GoodType:
            yield good, int(self._counts[good])

    def clear(self) -> None:
        self._counts[:] = 0

    @property
    def counts(self) -> np.ndarray:
        """Read-only view of the slot array."""
        view = self._counts.view()
        view.flags.writeable = False
        return view

    def copy(self) -> Inventory:
        return Inventory(self._counts)

    def to_dict(self) -> dict[str, int]:
        return {good.key: qty for good, qty in self.items()}

    @classmethod
    def from_dict(cls, d: dict[str, int]) -> Inventory:
        inv = cls()
        for key, qty in d.items():
            inv[GoodType.from_key(key)] = qty
        return inv
