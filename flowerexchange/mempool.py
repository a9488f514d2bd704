"""Object pool with stable slot indices, a LIFO free list and ownership checks."""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")

_MAX_CHUNK_SIZE = 4_000_000
_DEFAULT_CAPACITY = 256


class MemPool(Generic[T]):
    """Pool of objects built by ``factory``, each held in a numbered slot.

    A slot keeps its index for the lifetime of the pool. Freed slots are
    reused most recently freed first. The pool grows in chunks when it runs
    out of free slots.
    """

    def __init__(
        self, factory: Callable[..., T], initial_capacity: int = _DEFAULT_CAPACITY
    ) -> None:
        self._factory = factory
        self._initial_capacity = (
            initial_capacity if initial_capacity > 0 else _DEFAULT_CAPACITY
        )
        self._slots: list[T | None] = []
        self._is_free: list[bool] = []
        self._free: list[int] = []
        self._index_by_id: dict[int, int] = {}
        self._add_chunk(self._initial_capacity)

    @property
    def capacity(self) -> int:
        """Total number of slots, free or in use."""
        return len(self._slots)

    def __len__(self) -> int:
        """Number of objects currently allocated."""
        return len(self._slots) - len(self._free)

    def allocate(self, *args, **kwargs) -> T:
        """Build an object from the arguments and place it in a free slot."""
        obj = self._factory(*args, **kwargs)
        known = self._index_by_id.get(id(obj))
        if known is not None and self._slots[known] is obj:
            raise ValueError("factory returned an object already in the pool")
        if not self._free:
            self._grow()
        index = self._free.pop()
        previous = self._slots[index]
        if previous is not None:
            self._index_by_id.pop(id(previous), None)
        self._slots[index] = obj
        self._is_free[index] = False
        self._index_by_id[id(obj)] = index
        return obj

    def get_index(self, obj: T) -> int:
        """Return the stable slot index of an object that belongs to the pool."""
        index = self._index_by_id.get(id(obj))
        if index is None or self._slots[index] is not obj:
            raise ValueError("Pointer not in this MemPool")
        return index

    def get(self, index: int) -> T | None:
        """Return the object stored in a slot."""
        self._check_index(index)
        return self._slots[index]

    def deallocate(self, obj: T | None) -> None:
        """Return an object's slot to the pool; None is ignored."""
        if obj is None:
            return
        index = self._index_by_id.get(id(obj))
        if index is None or self._slots[index] is not obj:
            raise ValueError("Element not in this Memory pool")
        self._release(index)

    def deallocate_index(self, index: int) -> None:
        """Return a slot to the pool by its index."""
        self._check_index(index)
        self._release(index)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._slots):
            raise IndexError("MemPool index out of bounds")

    def _release(self, index: int) -> None:
        if self._is_free[index]:
            raise ValueError("Double free detected")
        self._is_free[index] = True
        self._free.append(index)

    def _add_chunk(self, count: int) -> None:
        start = len(self._slots)
        self._slots.extend([None] * count)
        self._is_free.extend([True] * count)
        # The first slot of the new chunk is handed out first.
        self._free.extend(range(start + count - 1, start - 1, -1))

    def _grow(self) -> None:
        self._add_chunk(
            min(_MAX_CHUNK_SIZE, max(self._initial_capacity, len(self._slots)))
        )