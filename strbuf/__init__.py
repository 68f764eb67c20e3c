"""strbuf: A Mutable Byte String with Pluggable Substring Search."""

from importlib.metadata import PackageNotFoundError, version

from strbuf._bytesearch import find, find_all, iter_find
from strbuf._string import String
from strbuf._types import SearchAlgorithm

__version__: str
"""The version of the library."""
try:
    __version__ = version("strbuf")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = [
    "__version__",
    "SearchAlgorithm",
    "String",
    "find",
    "find_all",
    "iter_find",
]
