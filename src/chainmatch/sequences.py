"""Permutation generation and lazy sequence views.

The views let the matcher score a reordered or transformed point list without
copying it. Each view holds a reference to its backing sequence, so changes to
a mutable backing list show through.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Callable, Iterator, List, MutableSequence, Sequence as SequenceT, TypeVar

T = TypeVar("T")
V = TypeVar("V")


def swap(items: MutableSequence[T], a: int, b: int) -> None:
    items[a], items[b] = items[b], items[a]


def array_permutations(original: SequenceT[T]) -> Iterator[List[T]]:
    """Yield every ordering of *original* using Heap's algorithm.

    The first ordering is *original* itself. Every yielded list is a fresh copy
    the caller may keep. Each call runs on its own working list and counters.
    See https://en.wikipedia.org/wiki/Heap%27s_algorithm
    """
    working = list(original)
    n = len(working)
    c = [0] * n

    yield list(working)

    i = 1
    while i < n:
        if c[i] < i:
            if i % 2 == 0:
                swap(working, 0, i)
            else:
                swap(working, c[i], i)
            yield list(working)
            c[i] += 1
            i = 1
        else:
            c[i] = 0
            i += 1


def index_permutations(n: int) -> Iterator[List[int]]:
    if n < 0:
        raise ValueError(f"Permutation length must be non-negative, got {n}")
    return array_permutations(range(n))


def _normalize_index(index: int, length: int) -> int:
    if index < 0:
        index += length
    if index < 0 or index >= length:
        raise IndexError("view index out of range")
    return index


class _View(Sequence):
    def _item(self, index: int):
        raise NotImplementedError

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self._item(i) for i in range(*index.indices(len(self)))]
        return self._item(_normalize_index(index, len(self)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self)!r})"


class IndexedView(_View):
    """``view[i] == backing[indices[i]]``."""

    def __init__(self, backing: SequenceT[T], indices: SequenceT[int]) -> None:
        if len(backing) != len(indices):
            raise ValueError(
                f"Index table length {len(indices)} does not match sequence length {len(backing)}"
            )
        self._backing = backing
        self._indices = indices

    def __len__(self) -> int:
        return len(self._indices)

    def _item(self, index: int) -> T:
        return self._backing[self._indices[index]]

    def __iter__(self) -> Iterator[T]:
        for index in self._indices:
            yield self._backing[index]


class MappedView(_View):
    """``view[i] == fn(backing[i])``, computed on every access."""

    def __init__(self, backing: SequenceT[T], fn: Callable[[T], V]) -> None:
        self._backing = backing
        self._fn = fn

    def __len__(self) -> int:
        return len(self._backing)

    def _item(self, index: int) -> V:
        return self._fn(self._backing[index])

    def __iter__(self) -> Iterator[V]:
        for elem in self._backing:
            yield self._fn(elem)


class ConcatView(_View):
    """*left* followed by *right*."""

    def __init__(self, left: SequenceT[T], right: SequenceT[T]) -> None:
        self._left = left
        self._right = right

    def __len__(self) -> int:
        return len(self._left) + len(self._right)

    def _item(self, index: int) -> T:
        if index < len(self._left):
            return self._left[index]
        return self._right[index - len(self._left)]

    def __iter__(self) -> Iterator[T]:
        yield from self._left
        yield from self._right


def virtualize(backing: SequenceT[T], indices: SequenceT[int]) -> IndexedView:
    return IndexedView(backing, indices)


def map_view(backing: SequenceT[T], fn: Callable[[T], V]) -> MappedView:
    return MappedView(backing, fn)


def concat_views(left: SequenceT[T], right: SequenceT[T]) -> ConcatView:
    return ConcatView(left, right)


__all__ = [
    "ConcatView",
    "IndexedView",
    "MappedView",
    "array_permutations",
    "concat_views",
    "index_permutations",
    "map_view",
    "swap",
    "virtualize",
]
