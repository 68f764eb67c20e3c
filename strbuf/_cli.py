"""strbuf CLI utility.

This module provides a command-line interface for searching and rewriting byte
strings with the strbuf search engine. The input is read from a file, stdin or an
inline text argument; patterns are given as UTF-8 text or, with --hex, as hex digits.
"""

import argparse
import sys
import time
from pathlib import Path
from typing import IO, cast

from strbuf import __version__
from strbuf._string import String
from strbuf._types import _SEARCH_ALGORITHMS, np


def _add_common_args(p: argparse.ArgumentParser) -> None:
    """Add common CLI arguments for all subcommands.

    Args:
        p (argparse.ArgumentParser): The argument parser to which the arguments will be added.
    """
    source = p.add_mutually_exclusive_group()
    source.add_argument(
        "--infile",
        type=str,
        default="-",
        help="Input file path (default: -, meaning stdin). Use - or omit for stdin. Always binary mode.",
    )
    source.add_argument(
        "--text", type=str, help="Inline input text, encoded as UTF-8 (replaces --infile)."
    )
    p.add_argument(
        "--outfile",
        type=str,
        default="-",
        help="Output file path (default: -, meaning stdout). Use - or omit for stdout. Always binary mode.",
    )
    p.add_argument(
        "--algorithm",
        choices=_SEARCH_ALGORITHMS,
        default="kmp",
        help="Substring search algorithm: kmp (Knuth-Morris-Pratt, default) or bmh (Boyer-Moore-Horspool).",
    )
    p.add_argument(
        "--hex",
        action="store_true",
        help="Interpret patterns as hexadecimal digits instead of UTF-8 text.",
    )
    p.add_argument(
        "--numpy",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Store the input in a NumPy array instead of a bytearray (default: False).",
    )
    p.add_argument(
        "--verbosity",
        choices=["info", "warning", "error", "none"],
        default="warning",
        help="Verbosity level: info, warning (default), error, none. "
        "Info shows all messages, including timing information.",
    )


def _vprint(msg: str, level: str, verbosity: str) -> None:
    """Conditionally print a message to stderr based on the verbosity level.

    Args:
        msg (str): The message to print.
        level (str): The message level: 'info', 'warning', or 'error'.
        verbosity (str): The verbosity setting: 'info', 'warning', 'error', or 'none'.
    """
    levels: dict[str, int] = {"info": 0, "warning": 1, "error": 2, "none": 3}
    msg_level = levels[level]
    user_level = levels[verbosity]
    if msg_level >= user_level:
        print(msg, file=sys.stderr)


def _open_file(file: str | None, mode: str, std_stream: IO[bytes] | object) -> IO[bytes]:
    """Opens a file in the specified binary mode or returns the provided standard stream if file is '-' or None.

    Args:
        file (str | None): Path to the file or '-' for the standard stream.
        mode (str): File open mode, e.g., 'rb' or 'wb'.
        std_stream (object): Standard stream to use if file is '-' or None.

    Returns:
        IO[bytes]: A file-like object opened for binary reading or writing.
    """
    if file == "-" or file is None:
        # Return the binary buffer of a stream if available, else the stream itself.
        return getattr(std_stream, "buffer", cast(IO[bytes], std_stream))
    else:
        return open(file, mode)


def _parse_pattern(value: str, as_hex: bool) -> bytes:
    """Convert a pattern argument to bytes.

    Args:
        value (str): The raw command-line value.
        as_hex (bool): If True, `value` holds hexadecimal digits; otherwise UTF-8 text.

    Returns:
        bytes: The pattern bytes.

    Raises:
        ValueError: If `as_hex` is True and `value` is not valid hexadecimal.
    """
    return bytes.fromhex(value) if as_hex else value.encode("utf-8")


def _run(command: str, string: String, patterns: list[bytes], fout: IO[bytes]) -> None:
    """Execute a subcommand and write its result.

    Args:
        command (str): The subcommand name.
        string (String): The input content.
        patterns (list[bytes]): The positional pattern arguments of the subcommand.
        fout (IO[bytes]): Destination of the result.
    """
    if command == "find":
        for offset in string.find_all(patterns[0]):
            fout.write(f"{offset}\n".encode())
    elif command == "contains":
        fout.write(b"true\n" if string.contains(patterns[0]) else b"false\n")
    elif command == "count":
        fout.write(f"{string.count(patterns[0])}\n".encode())
    elif command == "replace":
        string.replace(patterns[0], patterns[1])
        fout.write(string.data)
    elif command == "split":
        for field in string.split(patterns[0]):
            fout.write(field)
            fout.write(b"\n")
    fout.flush()


def main(args: list[str] | None = None) -> None:
    """Entry point for the strbuf CLI utility.

    Parses arguments, loads the input and dispatches the subcommand.

    Args:
        args (list or None): Optional list of arguments to parse instead of sys.argv.
    """
    parser = argparse.ArgumentParser(
        description="strbuf CLI utility for byte substring search and replacement."
    )
    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        help="Operation mode: find, contains, count, replace or split.",
    )

    find_cmd = subparsers.add_parser("find", help="Print the offset of every occurrence.")
    find_cmd.add_argument("pattern", help="The pattern to search for.")
    _add_common_args(find_cmd)

    contains_cmd = subparsers.add_parser("contains", help="Print whether the pattern occurs.")
    contains_cmd.add_argument("pattern", help="The pattern to search for.")
    _add_common_args(contains_cmd)

    count_cmd = subparsers.add_parser(
        "count", help="Print the number of occurrences, overlapping ones included."
    )
    count_cmd.add_argument("pattern", help="The pattern to count.")
    _add_common_args(count_cmd)

    replace_cmd = subparsers.add_parser("replace", help="Replace every occurrence of OLD with NEW.")
    replace_cmd.add_argument("old", help="The pattern to replace.")
    replace_cmd.add_argument("new", help="The replacement.")
    _add_common_args(replace_cmd)

    split_cmd = subparsers.add_parser("split", help="Print each field on its own line.")
    split_cmd.add_argument("delimiter", help="The field separator.")
    _add_common_args(split_cmd)

    parsed_args = parser.parse_args(args)
    verbosity = parsed_args.verbosity
    command = parsed_args.command
    outfile = parsed_args.outfile

    # Check if output file exists
    if outfile not in (None, "-"):
        out_path = Path(outfile)
        if out_path.exists():
            _vprint(
                f"Error: {out_path.resolve()} already exists. Refusing to overwrite. "
                "Use a different output file or remove the existing file.",
                "error",
                verbosity,
            )
            sys.exit(1)

    # Check if input file exists
    infile = parsed_args.infile
    if parsed_args.text is None and infile not in (None, "-") and not Path(infile).exists():
        _vprint(f"Error: input file '{infile}' does not exist.", "error", verbosity)
        sys.exit(1)

    # Decode the positional patterns
    if command == "replace":
        raw_patterns = [parsed_args.old, parsed_args.new]
    elif command == "split":
        raw_patterns = [parsed_args.delimiter]
    else:
        raw_patterns = [parsed_args.pattern]
    try:
        patterns = [_parse_pattern(p, parsed_args.hex) for p in raw_patterns]
    except ValueError as e:
        _vprint(f"Error: Invalid hexadecimal pattern: {e}", "error", verbosity)
        sys.exit(1)

    if not patterns[0]:
        if command == "split":
            msg = "Warning: The delimiter is empty; the input is written as a single field."
        else:
            msg = "Warning: The pattern is empty; it matches nothing."
        _vprint(msg, "warning", verbosity)

    # Print version and platform information
    _vprint(
        f"strbuf CLI v{__version__} (numpy: {np.__version__}, algorithm: {parsed_args.algorithm}) | "
        f"Python v{sys.version_info.major}.{sys.version_info.minor} | Platform: {sys.platform}",
        "info",
        verbosity,
    )

    try:
        if parsed_args.text is not None:
            content = parsed_args.text.encode("utf-8")
        else:
            with _open_file(infile, "rb", sys.stdin) as fin:
                content = fin.read()

        string = String(content, algorithm=parsed_args.algorithm, use_numpy=parsed_args.numpy)
        _vprint(f"Loaded {len(string)} bytes of input.", "info", verbosity)

        with _open_file(outfile, "wb", sys.stdout) as fout:
            start_time = time.perf_counter()
            _run(command, string, patterns, fout)
            # Print elapsed time
            _vprint(
                f"The '{command}' step took {time.perf_counter() - start_time:.3f} seconds.",
                "info",
                verbosity,
            )
    except (BrokenPipeError, OSError) as e:
        _vprint(f"Error: I/O error during read/write: {e}", "error", verbosity)
        sys.exit(1)
    except KeyboardInterrupt:
        _vprint("\nOperation cancelled by user.", "error", verbosity)
        sys.exit(130)


if __name__ == "__main__":
    main()
