"""Type definitions and central imports for the strbuf project."""

from typing import Literal, TypeAlias

import numpy

__all__: list[str] = []

np = numpy

SearchAlgorithm = Literal["kmp", "bmh"]
"""Tag selecting the substring search algorithm: Knuth-Morris-Pratt or Boyer-Moore-Horspool."""

_SEARCH_ALGORITHMS: tuple[str, ...] = ("kmp", "bmh")

_BytesLike: TypeAlias = bytes | bytearray | memoryview

_SENTINEL = 0
