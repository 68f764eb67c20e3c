"""Implements a dynamic, sentinel-terminated buffer for bytearray or NumPy arrays.

Provides the storage owner behind `String`: a growable byte array that always keeps
a zero byte right after its meaningful content, so the storage can be handed to
consumers of C-style null-terminated strings. Every rewrite that changes the length
of the content is built in fresh storage and then swapped in.
"""

from cffi import FFI

from strbuf._bytesearch import _as_view
from strbuf._types import _SENTINEL, _BytesLike, np

__all__: list[str] = []

_ffi = FFI()


class _Buffer:
    """A dynamic buffer that can use either a bytearray or a NumPy array.

    The buffer holds `len(buffer)` meaningful bytes followed by a hidden sentinel
    byte (zero) that is never counted nor returned as data. The physical capacity
    is always at least one byte more than the length. If new data fits within the
    current capacity, it's written using slice assignment. Otherwise, larger storage
    is built, filled and swapped in.
    """

    def __init__(self, size: int = 0, use_numpy: bool = False) -> None:
        """Initialise the _Buffer.

        Args:
            size (int): The number of data bytes to pre-allocate room for. Defaults to 0
                (room for the sentinel only).
            use_numpy (bool): If True, a NumPy array (np.uint8) is used as the
                internal buffer. If False, a bytearray is used. Defaults to False.

        Raises:
            ValueError: If `size` is not a non-negative integer.
            TypeError: If `use_numpy` is not a boolean.
        """
        if not isinstance(size, int) or size < 0:
            raise ValueError("size must be a non-negative integer.")
        if not isinstance(use_numpy, bool):
            raise TypeError("use_numpy must be a boolean.")

        self._use_numpy = use_numpy
        self._buffer = self.build_array(size + 1, use_numpy)
        self._capacity = size + 1
        self._current_pos = 0
        self._buffer[0] = _SENTINEL

    def __len__(self) -> int:
        """Returns the length of the used portion of the buffer, sentinel excluded.

        Returns:
            int: The length of the used portion of the buffer.
        """
        return self._current_pos

    def __str__(self) -> str:
        """Returns a string representation of the _Buffer instance.

        Returns:
            str: A string representation of the _Buffer instance.
        """
        return (
            f"_Buffer(capacity={self._capacity}, "
            f"current_pos={self._current_pos}, "
            f"type={type(self._buffer).__name__})"
        )

    @classmethod
    def build_array(
        cls, size: int = 0, use_numpy: bool = False
    ) -> "np.ndarray[tuple[int], np.dtype[np.uint8]] | bytearray":
        """Builds a zero-filled bytearray or NumPy array of the specified size.

        Args:
            size (int): The number of bytes to allocate. Defaults to 0 (an empty array).
            use_numpy (bool): If True, a NumPy array (np.uint8) is built. If False, a
                bytearray is built. Defaults to False.

        Returns:
            np.ndarray[tuple[int], np.dtype[np.uint8]] | bytearray: The created array.
        """
        return np.zeros(size, dtype=np.uint8) if use_numpy else bytearray(size)

    @property
    def uses_numpy(self) -> bool:
        """Whether the storage is a NumPy array rather than a bytearray."""
        return self._use_numpy

    @property
    def data(self) -> memoryview:
        """Returns a memoryview of the used portion of the buffer.

        The view excludes the sentinel. It stays valid after later mutations but may
        then refer to storage the buffer no longer owns.

        Returns:
            memoryview: A memoryview of the used portion of the buffer.
        """
        data: memoryview = (
            memoryview(self._buffer) if isinstance(self._buffer, bytearray) else self._buffer.data
        )
        return data[: self._current_pos]

    def _grow_into(self, capacity: int) -> None:
        """Move the current content into new storage of the given physical capacity.

        Args:
            capacity (int): The new physical capacity, sentinel slot included.
        """
        buffer = self.build_array(capacity, self._use_numpy)
        if self._current_pos > 0:
            buffer[: self._current_pos] = self.data
        self._buffer = buffer
        self._capacity = capacity

    def extend(self, block: _BytesLike) -> None:
        """Extend the buffer with the given block of data.

        If the data and the sentinel fit within the current capacity, it's written using
        slice assignment. Otherwise, the capacity is at least doubled first.

        Args:
            block (bytes | bytearray | memoryview): The data to append.
        """
        view = _as_view(block)
        block_len = len(view)
        if block_len == 0:
            return

        next_pos = self._current_pos + block_len
        if next_pos >= self._capacity:
            self._grow_into(max(next_pos + 1, 2 * self._capacity))
        self._buffer[self._current_pos : next_pos] = view
        self._buffer[next_pos] = _SENTINEL
        self._current_pos = next_pos

    def replace_contents(self, block: _BytesLike) -> None:
        """Discard the current content and become a copy of `block`.

        The copy is made in new storage which then replaces the old one, so `block` may
        be a view of this very buffer and a failed allocation leaves the buffer untouched.

        Args:
            block (bytes | bytearray | memoryview): The new content.
        """
        view = _as_view(block)
        block_len = len(view)
        buffer = self.build_array(block_len + 1, self._use_numpy)
        if block_len > 0:
            buffer[:block_len] = view
        buffer[block_len] = _SENTINEL

        self._buffer = buffer
        self._capacity = block_len + 1
        self._current_pos = block_len

    def resize(self, new_length: int) -> None:
        """Set the length of the content, re-placing the sentinel.

        Shrinking keeps the first `new_length` bytes; growing pads with zero bytes.

        Args:
            new_length (int): The new length of the content.

        Raises:
            ValueError: If `new_length` is not a non-negative integer.
        """
        if not isinstance(new_length, int) or new_length < 0:
            raise ValueError("new_length must be a non-negative integer.")

        if new_length >= self._capacity:
            self._grow_into(new_length + 1)
        elif new_length > self._current_pos:
            padding = memoryview(bytes(new_length - self._current_pos))
            self._buffer[self._current_pos : new_length] = padding
        self._buffer[new_length] = _SENTINEL
        self._current_pos = new_length

    def write(self, offset: int, block: _BytesLike) -> None:
        """Overwrite the content at `offset` with `block`, without changing the length.

        Args:
            offset (int): The index of the first byte to overwrite.
            block (bytes | bytearray | memoryview): The data to write.

        Raises:
            ValueError: If `offset` is negative or `block` does not fit within the content.
        """
        if not isinstance(offset, int) or offset < 0:
            raise ValueError("offset must be a non-negative integer.")
        view = _as_view(block)
        end = offset + len(view)
        if end > self._current_pos:
            raise ValueError("block must fit within the buffer content.")
        self._buffer[offset:end] = view

    def truncate(self, start: int, end: int | None = None) -> None:
        """Truncate the buffer in-place, keeping only the data from `start` to `end`.

        The kept bytes are moved to the front of the storage and the length shrinks to
        `end - start`; the storage and its capacity are kept. If `end` is None, the buffer is
        truncated up to its current length.

        Args:
            start (int): The starting index (inclusive) of the data to keep.
            end (int | None): The ending index (exclusive) of the data to keep. If None,
                keeps up to the buffer's length.

        Raises:
            ValueError: If `start` or `end` are negative, out of bounds, or if `end` < `start`.
        """
        if not isinstance(start, int) or start < 0:
            raise ValueError("start must be a non-negative integer.")
        elif start > self._current_pos:
            raise ValueError("start index is out of bounds of buffer length.")
        if end is None:
            end = self._current_pos
        elif not isinstance(end, int) or end < 0:
            raise ValueError("end must be a non-negative integer if provided.")
        elif end > self._current_pos:
            raise ValueError("end index is out of bounds of buffer length.")
        elif end < start:
            raise ValueError("end index must be greater than or equal to start index.")

        new_length = end - start
        if start > 0 and new_length > 0:
            kept = self.data[start:end].tobytes()
            self._buffer[:new_length] = memoryview(kept)
        self.resize(new_length)

    def reverse(self) -> None:
        """Reverse the content in place."""
        n = self._current_pos
        if n <= 1:
            return
        if isinstance(self._buffer, bytearray):
            self._buffer[:n] = self._buffer[n - 1 :: -1]
        else:
            self._buffer[:n] = np.flip(self._buffer[:n]).copy()

    def to_upper(self) -> None:
        """Convert ASCII lowercase letters to uppercase in place; other bytes are kept."""
        n = self._current_pos
        if isinstance(self._buffer, bytearray):
            self._buffer[:n] = self._buffer[:n].upper()
        else:
            view = self._buffer[:n]
            view[(view >= ord("a")) & (view <= ord("z"))] -= 32

    def to_lower(self) -> None:
        """Convert ASCII uppercase letters to lowercase in place; other bytes are kept."""
        n = self._current_pos
        if isinstance(self._buffer, bytearray):
            self._buffer[:n] = self._buffer[:n].lower()
        else:
            view = self._buffer[:n]
            view[(view >= ord("A")) & (view <= ord("Z"))] += 32

    def c_str(self) -> "_ffi.CData":
        """Expose the storage as a null-terminated C string.

        The returned `char[]` covers the content plus the sentinel and keeps the current
        storage alive. `ffi.string()` on it yields the content up to the first zero byte.

        Returns:
            _ffi.CData: A cffi `char[]` over the current storage.
        """
        return _ffi.from_buffer("char[]", self._buffer)
