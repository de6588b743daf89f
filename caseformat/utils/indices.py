from typing import Any, Dict, Hashable, Iterable, Iterator, List, Tuple


class IdIndex:
    """
    Map of record ids to the row that first declared them.

    Rows that repeat an id already in the index are remembered rather
    than overwriting the first one, so duplicates can be reported once
    per (first row, repeated row) pair.

    >>> index = IdIndex()
    >>> index.add(10, row=1)
    >>> index.add(20, row=2)
    >>> index.add(10, row=3)
    >>> index[10]
    1
    >>> list(index.duplicates())
    [(10, 1, 3)]
    """

    def __init__(self):
        self._first: Dict[Hashable, int] = {}
        self._repeats: List[Tuple[Hashable, int, int]] = []

    @classmethod
    def from_rows(cls, items: Iterable[Tuple[Hashable, int]]):
        """Build an index from (id, row) pairs."""
        index = cls()
        for key, row in items:
            index.add(key, row)
        return index

    # ------------------------------------------------------------
    # Basic mapping operations
    # ------------------------------------------------------------

    def add(self, key: Hashable, row: int):
        if key in self._first:
            self._repeats.append((key, self._first[key], row))
        else:
            self._first[key] = row

    def __getitem__(self, key: Hashable) -> int:
        return self._first[key]

    def __contains__(self, key: Any) -> bool:
        return key in self._first

    def __len__(self):
        return len(self._first)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._first)

    # ------------------------------------------------------------
    # Duplicates
    # ------------------------------------------------------------

    def duplicates(self) -> Iterator[Tuple[Hashable, int, int]]:
        """Yield (id, first row, repeated row) in the order repeats were added."""
        return iter(self._repeats)

    def __repr__(self):
        return f"IdIndex({len(self._first)} ids, {len(self._repeats)} duplicates)"
