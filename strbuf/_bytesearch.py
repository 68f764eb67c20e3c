"""Provides the byte search engine.

Offers `find`, `find_all` and `iter_find` operations backed by two interchangeable
algorithms: Knuth-Morris-Pratt and Boyer-Moore-Horspool (with bad-character and
good-suffix tables). Both report every occurrence of the needle, overlapping ones
included, and never mutate their inputs.
"""

from typing import Callable, Iterator

from strbuf._types import _SEARCH_ALGORITHMS, SearchAlgorithm, _BytesLike

__all__ = ["find", "find_all", "iter_find"]


def _as_view(obj: _BytesLike) -> memoryview:
    """Wrap a bytes-like object in a flat, unsigned byte memoryview.

    Args:
        obj (bytes or bytearray or memoryview): The object to wrap.

    Returns:
        memoryview: A one-dimensional view with format "B".
    """
    view = obj if isinstance(obj, memoryview) else memoryview(obj)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


def _compute_lps(pattern: memoryview) -> list[int]:
    """Build the longest-proper-prefix-suffix (failure) table of the KMP algorithm.

    Args:
        pattern (memoryview): The non-empty pattern.

    Returns:
        list[int]: For each position `i`, the length of the longest proper prefix of
            `pattern[:i + 1]` that is also a suffix of it.
    """
    m = len(pattern)
    lps = [0] * m
    left = 0
    right = 1
    while right < m:
        if pattern[right] == pattern[left]:
            left += 1
            lps[right] = left
            right += 1
        elif left != 0:
            left = lps[left - 1]
        else:
            lps[right] = 0
            right += 1
    return lps


def _iter_kmp(haystack: memoryview, pattern: memoryview) -> Iterator[int]:
    """Yield every offset of `pattern` in `haystack` using Knuth-Morris-Pratt.

    Args:
        haystack (memoryview): The bytes to search within.
        pattern (memoryview): The non-empty bytes to search for.

    Yields:
        int: The 0-based starting index of each occurrence, in ascending order.
    """
    n = len(haystack)
    m = len(pattern)
    lps = _compute_lps(pattern)

    str_index = 0
    pat_index = 0
    while str_index < n:
        if haystack[str_index] == pattern[pat_index]:
            str_index += 1
            pat_index += 1
            if pat_index == m:
                yield str_index - m
                # Keep the matched border so overlapping occurrences are found
                pat_index = lps[pat_index - 1]
        elif pat_index != 0:
            pat_index = lps[pat_index - 1]
        else:
            str_index += 1


def _bad_character_table(pattern: memoryview) -> list[int]:
    """Build the bad-character table: the last index of every byte value in the pattern.

    Args:
        pattern (memoryview): The non-empty pattern.

    Returns:
        list[int]: 256 entries, -1 for byte values absent from the pattern.
    """
    table = [-1] * 256
    for idx, byte in enumerate(pattern):
        table[byte] = idx
    return table


def _good_suffix_table(pattern: memoryview) -> list[int]:
    """Build the good-suffix shift table with the two-pass border computation.

    Args:
        pattern (memoryview): The non-empty pattern.

    Returns:
        list[int]: `m + 1` shift distances; entry `j` applies when the mismatch happens
            at pattern index `j - 1`, entry 0 after a full match. All entries are >= 1.
    """
    m = len(pattern)
    shift = [0] * (m + 1)
    border = [0] * (m + 1)

    # First pass: borders of every suffix, and shifts for suffixes reoccurring
    # inside the pattern preceded by a different byte
    i = m
    j = m + 1
    border[i] = j
    while i > 0:
        while j <= m and pattern[i - 1] != pattern[j - 1]:
            if shift[j] == 0:
                shift[j] = j - i
            j = border[j]
        i -= 1
        j -= 1
        border[i] = j

    # Second pass: fall back to the widest border of the whole pattern
    j = border[0]
    for i in range(m + 1):
        if shift[i] == 0:
            shift[i] = j
        if i == j:
            j = border[j]
    return shift


def _iter_bmh(haystack: memoryview, pattern: memoryview) -> Iterator[int]:
    """Yield every offset of `pattern` in `haystack` using Boyer-Moore-Horspool.

    Args:
        haystack (memoryview): The bytes to search within.
        pattern (memoryview): The non-empty bytes to search for.

    Yields:
        int: The 0-based starting index of each occurrence, in ascending order.
    """
    n = len(haystack)
    m = len(pattern)
    bad_char = _bad_character_table(pattern)
    good_suffix = _good_suffix_table(pattern)

    i = 0
    while i <= n - m:
        j = m - 1
        while j >= 0 and pattern[j] == haystack[i + j]:
            j -= 1
        if j < 0:
            yield i
            i += good_suffix[0]
        else:
            i += max(good_suffix[j + 1], j - bad_char[haystack[i + j]])


_SEARCHERS: dict[str, Callable[[memoryview, memoryview], Iterator[int]]] = {
    "kmp": _iter_kmp,
    "bmh": _iter_bmh,
}


def iter_find(
    haystack: _BytesLike, needle: _BytesLike, algorithm: SearchAlgorithm = "kmp"
) -> Iterator[int]:
    """Lazily yields all occurrences of needle in haystack, overlapping ones included.

    The search tables are built when iteration starts and released with the iterator.
    The haystack must not be resized while the iterator is alive.

    Args:
        haystack (bytes or bytearray or memoryview): The bytes object to search within.
        needle (bytes or bytearray or memoryview): The bytes object to search for.
        algorithm (SearchAlgorithm): "kmp" for Knuth-Morris-Pratt or "bmh" for
            Boyer-Moore-Horspool. Defaults to "kmp".

    Returns:
        Iterator[int]: The 0-based starting indices in ascending order. Yields nothing if
            the needle is empty, the haystack is empty or the needle is longer than it.

    Raises:
        ValueError: If `algorithm` is not "kmp" or "bmh".
    """
    if algorithm not in _SEARCH_ALGORITHMS:
        raise ValueError("algorithm must be either 'kmp' or 'bmh'.")

    haystack_view = _as_view(haystack)
    needle_view = _as_view(needle)
    n = len(haystack_view)
    m = len(needle_view)
    if m == 0 or n == 0 or m > n:
        return iter(())

    return _SEARCHERS[algorithm](haystack_view, needle_view)


def find_all(
    haystack: _BytesLike, needle: _BytesLike, algorithm: SearchAlgorithm = "kmp"
) -> list[int]:
    """Finds all occurrences of needle in haystack, overlapping ones included.

    Both algorithms return identical results for any input; they only differ in how
    far they skip ahead after a mismatch.

    Args:
        haystack (bytes or bytearray or memoryview): The bytes object to search within.
        needle (bytes or bytearray or memoryview): The bytes object to search for.
        algorithm (SearchAlgorithm): "kmp" for Knuth-Morris-Pratt or "bmh" for
            Boyer-Moore-Horspool. Defaults to "kmp".

    Returns:
        list[int]: A list of 0-based starting indices of all occurrences. Returns an empty list if
            no occurrences are found or if the pattern is empty or longer than the text.

    Raises:
        ValueError: If `algorithm` is not "kmp" or "bmh".
    """
    return list(iter_find(haystack, needle, algorithm))


def find(
    haystack: _BytesLike,
    needle: _BytesLike,
    start: int = 0,
    end: int | None = None,
    algorithm: SearchAlgorithm = "kmp",
) -> int:
    """Finds the first occurrence of needle in haystack[start:end].

    Indices follow the semantics of `bytes.find`, negative values included.

    Args:
        haystack (bytes or bytearray or memoryview): The bytes object to search within.
        needle (bytes or bytearray or memoryview): The bytes object to search for.
        start (int): The starting index to search from. Defaults to 0.
        end (int, optional): The ending index (exclusive) to search to. Defaults to None (end of haystack).
        algorithm (SearchAlgorithm): "kmp" or "bmh". Defaults to "kmp".

    Returns:
        int: The 0-based starting index of the first occurrence, or -1 if not found.

    Raises:
        ValueError: If `algorithm` is not "kmp" or "bmh".
    """
    view = _as_view(haystack)
    n = len(view)

    if start < 0:
        start = max(n + start, 0)
    if end is None:
        end = n
    elif end < 0:
        end = max(n + end, 0)
    else:
        end = min(end, n)

    if len(_as_view(needle)) == 0:
        # Python's behavior for empty needle
        if algorithm not in _SEARCH_ALGORITHMS:
            raise ValueError("algorithm must be either 'kmp' or 'bmh'.")
        if start > n or start > end:
            return -1
        return start
    if start >= end:
        return -1

    idx = next(iter_find(view[start:end], needle, algorithm), -1)
    if idx == -1:
        return -1
    return idx + start
