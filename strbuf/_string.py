"""Implements the String class, a mutable byte string with substring search.

All pattern lookups go through the byte search engine; storage is owned by a single
`_Buffer`. Operations work on raw bytes: text arguments are encoded as UTF-8 and case
conversion only touches ASCII letters.
"""

from typing import Any, Iterator

from strbuf._buffer import _Buffer
from strbuf._bytesearch import _as_view, find, find_all, iter_find
from strbuf._types import _SEARCH_ALGORITHMS, SearchAlgorithm, _BytesLike

__all__ = ["String"]


def _to_view(obj: str | _BytesLike) -> memoryview:
    """Return a byte view of a bytes-like object, encoding text as UTF-8.

    Args:
        obj (str or bytes or bytearray or memoryview): The object to view.

    Returns:
        memoryview: A flat unsigned byte view.

    Raises:
        TypeError: If `obj` is neither text nor a bytes-like object.
    """
    if isinstance(obj, str):
        return memoryview(obj.encode("utf-8"))
    return _as_view(obj)


class _SplitFields:
    """Lazy iterable over the fields of a String separated by a delimiter.

    Every call to `iter()` scans the current content again, so the fields can be
    walked more than once. The String must not be mutated while a walk is in progress.
    """

    def __init__(self, buffer: _Buffer, delimiter: bytes, algorithm: SearchAlgorithm) -> None:
        self._buffer = buffer
        self._delimiter = delimiter
        self._algorithm = algorithm

    def __iter__(self) -> Iterator[memoryview]:
        data = self._buffer.data
        delimiter_len = len(self._delimiter)
        start = 0
        for idx in iter_find(data, self._delimiter, self._algorithm):
            if idx < start:
                # Overlaps the delimiter just consumed
                continue
            yield data[start:idx]
            start = idx + delimiter_len
        yield data[start:]


class String:
    """A growable, mutable byte string.

    The content lives in a sentinel-terminated buffer (a bytearray, or a NumPy array if
    requested) and is searched with either Knuth-Morris-Pratt or Boyer-Moore-Horspool.
    Length-changing rewrites (`replace`, `append` beyond capacity) are built in scratch
    storage and swapped in, so a failure never leaves a half-updated String behind.

    Instances are not thread-safe; guard shared instances with a lock.
    """

    def __init__(
        self,
        initial: str | _BytesLike = b"",
        algorithm: SearchAlgorithm = "kmp",
        use_numpy: bool = False,
    ) -> None:
        """Initialise a String with a copy of `initial`.

        Args:
            initial (str or bytes or bytearray or memoryview): The initial content; text is
                encoded as UTF-8. Defaults to empty.
            algorithm (SearchAlgorithm): The substring search algorithm, "kmp" or "bmh".
                Defaults to "kmp".
            use_numpy (bool): If True, the content is stored in a NumPy uint8 array instead of
                a bytearray. Defaults to False.

        Raises:
            ValueError: If `algorithm` is not "kmp" or "bmh".
            TypeError: If `use_numpy` is not a boolean.
            TypeError: If `initial` is neither text nor a bytes-like object.
        """
        if algorithm not in _SEARCH_ALGORITHMS:
            raise ValueError("algorithm must be either 'kmp' or 'bmh'.")

        view = _to_view(initial)
        self._algorithm = algorithm
        self._buffer = _Buffer(size=len(view), use_numpy=use_numpy)
        self._buffer.extend(view)

    def __len__(self) -> int:
        """Returns the number of bytes in the String.

        Returns:
            int: The length of the content.
        """
        return len(self._buffer)

    def __bytes__(self) -> bytes:
        return self.to_bytes()

    def __str__(self) -> str:
        """Decode the content as UTF-8, replacing invalid sequences.

        Returns:
            str: The decoded content.
        """
        return self.to_bytes().decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"String({self.to_bytes()!r}, algorithm={self._algorithm!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, String):
            return self.data == other.data
        if isinstance(other, (str, bytes, bytearray, memoryview)):
            return self.eql(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __getitem__(self, index: int) -> int:
        return self.at(index)

    def __contains__(self, pattern: str | _BytesLike) -> bool:
        return self.contains(pattern)

    @property
    def algorithm(self) -> SearchAlgorithm:
        """The substring search algorithm used by this String."""
        return self._algorithm

    @property
    def data(self) -> memoryview:
        """A memoryview of the content, without the trailing sentinel byte."""
        return self._buffer.data

    def to_bytes(self) -> bytes:
        """Return a copy of the content.

        Returns:
            bytes: The content as an immutable bytes object.
        """
        return self._buffer.data.tobytes()

    def c_str(self) -> Any:
        """Expose the content as a null-terminated C string (a cffi `char[]`).

        Returns:
            The cffi `char[]` over the storage, sentinel included.
        """
        return self._buffer.c_str()

    def is_empty(self) -> bool:
        return len(self._buffer) == 0

    def at(self, index: int) -> int:
        """Return the byte at `index`.

        Args:
            index (int): The position of the byte; negative values count from the end.

        Returns:
            int: The byte value.

        Raises:
            IndexError: If `index` is out of range.
        """
        return self._buffer.data[index]

    def eql(self, other: str | _BytesLike) -> bool:
        return self._buffer.data == _to_view(other)

    def starts_with(self, prefix: str | _BytesLike) -> bool:
        view = _to_view(prefix)
        return len(view) <= len(self) and self._buffer.data[: len(view)] == view

    def ends_with(self, suffix: str | _BytesLike) -> bool:
        view = _to_view(suffix)
        n = len(self)
        return len(view) <= n and self._buffer.data[n - len(view) :] == view

    def append(self, block: str | _BytesLike) -> None:
        """Append `block` to the end of the String.

        Args:
            block (str or bytes or bytearray or memoryview): The data to append.
        """
        self._buffer.extend(_to_view(block))

    def find_all(self, pattern: str | _BytesLike) -> list[int]:
        """Return the offsets of every occurrence of `pattern`, overlapping ones included.

        Args:
            pattern (str or bytes or bytearray or memoryview): The bytes to search for.

        Returns:
            list[int]: Ascending 0-based byte offsets; empty if the pattern is empty or absent.
        """
        return find_all(self._buffer.data, _to_view(pattern), self._algorithm)

    def find(self, pattern: str | _BytesLike, start: int = 0, end: int | None = None) -> int:
        """Return the offset of the first occurrence of `pattern` in `self[start:end]`, or -1."""
        return find(self._buffer.data, _to_view(pattern), start, end, self._algorithm)

    def contains(self, pattern: str | _BytesLike) -> bool:
        return next(iter_find(self._buffer.data, _to_view(pattern), self._algorithm), -1) != -1

    def count(self, pattern: str | _BytesLike) -> int:
        """Count the occurrences of `pattern`, overlapping ones included.

        Args:
            pattern (str or bytes or bytearray or memoryview): The bytes to count.

        Returns:
            int: The number of offsets `find_all` reports for `pattern`.
        """
        return len(self.find_all(pattern))

    def replace(self, old: str | _BytesLike, new: str | _BytesLike) -> None:
        """Replace every occurrence of `old` with `new`.

        Occurrences are replaced left to right; an occurrence overlapping one already
        replaced is left alone, as with `bytes.replace`. The result is built in a scratch
        bytearray and swapped in, so `new` may be shorter, equal or longer than `old`.
        Nothing happens if the String is empty, `old` is empty or `old` does not occur.

        Args:
            old (str or bytes or bytearray or memoryview): The bytes to replace.
            new (str or bytes or bytearray or memoryview): The replacement bytes.
        """
        old_view = _to_view(old)
        new_view = _to_view(new)
        if len(self) == 0 or len(old_view) == 0:
            return

        matches = self.find_all(old_view)
        if not matches:
            return

        content = self._buffer.data
        old_len = len(old_view)
        new_contents = bytearray()
        orig_index = 0
        for match_index in matches:
            if match_index < orig_index:
                continue
            new_contents += content[orig_index:match_index]
            new_contents += new_view
            orig_index = match_index + old_len
        # Append end of string if match does not end original string
        new_contents += content[orig_index:]
        self._buffer.replace_contents(new_contents)

    def replace_in_place(self, old: str | _BytesLike, new: str | _BytesLike) -> None:
        """Replace every occurrence of `old` with `new` of the same length, in place.

        No storage is allocated besides the search tables. The result is the same as
        `replace` with the same arguments.

        Args:
            old (str or bytes or bytearray or memoryview): The bytes to replace.
            new (str or bytes or bytearray or memoryview): The replacement bytes, exactly as
                long as `old`.
        """
        old_view = _to_view(old)
        new_view = _to_view(new)
        assert len(old_view) == len(new_view), "old and new must have the same length."
        if len(self) == 0 or len(old_view) == 0:
            return

        new_bytes = new_view.tobytes()
        next_free = 0
        for match_index in self.find_all(old_view):
            if match_index < next_free:
                continue
            self._buffer.write(match_index, new_bytes)
            next_free = match_index + len(old_view)

    def _set_trimmed(self, cut_set: str | _BytesLike, left: bool, right: bool) -> None:
        cut = frozenset(_to_view(cut_set))
        data = self._buffer.data
        start = 0
        end = len(data)
        if left:
            while start < end and data[start] in cut:
                start += 1
        if right:
            while end > start and data[end - 1] in cut:
                end -= 1
        if start == 0 and end == len(data):
            return
        self._buffer.truncate(start, end)

    def trim(self, cut_set: str | _BytesLike) -> None:
        """Remove leading and trailing bytes found in `cut_set`.

        Args:
            cut_set (str or bytes or bytearray or memoryview): The bytes to strip. An empty
                set strips nothing.
        """
        self._set_trimmed(cut_set, left=True, right=True)

    def trim_left(self, cut_set: str | _BytesLike) -> None:
        """Remove leading bytes found in `cut_set`."""
        self._set_trimmed(cut_set, left=True, right=False)

    def trim_right(self, cut_set: str | _BytesLike) -> None:
        """Remove trailing bytes found in `cut_set`."""
        self._set_trimmed(cut_set, left=False, right=True)

    def split(self, delimiter: str | _BytesLike) -> _SplitFields:
        """Split the content on `delimiter`.

        Fields are memoryviews into the content. Empty fields are kept: a String that
        starts or ends with the delimiter yields an empty first or last field, and an
        empty String yields a single empty field. An empty delimiter yields the whole
        content as one field.

        Args:
            delimiter (str or bytes or bytearray or memoryview): The separator.

        Returns:
            _SplitFields: A lazy iterable that can be walked several times.
        """
        return _SplitFields(self._buffer, _to_view(delimiter).tobytes(), self._algorithm)

    def reverse(self) -> None:
        """Reverse the bytes of the String in place (multi-byte characters are not kept together)."""
        self._buffer.reverse()

    def to_upper(self) -> None:
        """Convert ASCII letters to uppercase in place."""
        self._buffer.to_upper()

    def to_lower(self) -> None:
        """Convert ASCII letters to lowercase in place."""
        self._buffer.to_lower()
