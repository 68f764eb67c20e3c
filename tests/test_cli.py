import os
import shutil
import sys
import tempfile
import unittest
from contextlib import contextmanager
from io import BytesIO, StringIO
from pathlib import Path
from unittest.mock import patch

from strbuf._cli import _parse_pattern, _vprint, main


class _UnclosableBytesIO(BytesIO):
    """Buffer that prevents closing during the test."""

    def close(self):
        pass


class _FakeStdout:
    """Fake stdout class with a buffer attribute for capturing binary output in tests."""

    def __init__(self, buffer):
        self.buffer = buffer


class _FakeStdin:
    """Fake stdin class with a buffer attribute for simulating binary input in tests."""

    def __init__(self, buffer):
        self.buffer = buffer


class _BrokenPipeBytesIO(BytesIO):
    """BytesIO that raises BrokenPipeError on write to simulate a broken pipe."""

    def write(self, b):
        raise BrokenPipeError("Simulated broken pipe")


class TestStrbufCLI(unittest.TestCase):
    """Unit tests for the strbuf CLI covering all supported scenarios."""

    def setUp(self):
        """Create a temporary directory for each test and an input file."""
        self.temp_dir = tempfile.mkdtemp()
        self.temp_dir_path = Path(self.temp_dir)
        self.infile = self._write_file("input.txt", b"Mississippi")
        self.outfile = self.temp_dir_path / "output.txt"

    def tearDown(self):
        """Remove the temporary directory after each test."""
        shutil.rmtree(self.temp_dir)

    def _write_file(self, filename, data):
        """Helper to write binary data to a file in temp_dir."""
        path = self.temp_dir_path / filename
        with path.open("wb") as f:
            f.write(data)
        return path

    @contextmanager
    def _in_tempdir(self):
        """Context manager to run code in the temp dir, restoring cwd and rethrowing exceptions."""
        cwd = Path.cwd()
        try:
            os.chdir(self.temp_dir_path)
            yield
        finally:
            if Path.cwd() != cwd:
                os.chdir(cwd)

    @contextmanager
    def _patch_stdio(self, stdin_data=None):
        """Patch stdin with `stdin_data` and stdout with an in-memory buffer, unless already patched."""
        patches = [patch("sys.stdin", new=_FakeStdin(BytesIO(stdin_data or b"")))]
        if not isinstance(sys.stdout, _FakeStdout):
            fake_stdout_buffer = _UnclosableBytesIO()
            patches.append(patch("sys.stdout", new=_FakeStdout(fake_stdout_buffer)))
        else:
            fake_stdout_buffer = getattr(sys.stdout, "buffer", None)
        for p in patches:
            p.start()
        try:
            yield fake_stdout_buffer
        finally:
            for p in reversed(patches):
                p.stop()

    def _run_cli(self, command, patterns, infile=None, outfile=None, extra_args=None, stdin_data=None):
        """Helper to run a CLI subcommand and return what it wrote to stdout.

        Without `infile` the input is read from stdin; without `outfile` the result goes to stdout.
        """
        args = [command, *patterns]
        if infile is not None:
            args += ["--infile", infile]
        if outfile is not None:
            args += ["--outfile", outfile]
        if extra_args:
            args += extra_args

        args = [str(arg) for arg in args]
        with self._patch_stdio(stdin_data) as fake_stdout_buffer:
            main(args)
        return fake_stdout_buffer.getvalue() if fake_stdout_buffer else None

    def test_find_file_to_stdout(self):
        """Test find reads a file and prints one offset per line."""
        out_bytes = self._run_cli("find", ["iss"], infile=self.infile)
        self.assertEqual(out_bytes, b"1\n4\n")

    def test_find_stdin_to_file(self):
        """Test find reads stdin and writes the offsets to a file."""
        self._run_cli("find", ["i"], outfile=self.outfile, stdin_data=b"Mississippi")
        self.assertEqual(self.outfile.read_bytes(), b"1\n4\n7\n10\n")

    def test_find_no_match(self):
        """Test find prints nothing when the pattern is absent."""
        out_bytes = self._run_cli("find", ["z"], infile=self.infile)
        self.assertEqual(out_bytes, b"")

    def test_find_with_both_algorithms(self):
        """Test find gives the same offsets with kmp and bmh, overlapping matches included."""
        for algorithm in ("kmp", "bmh"):
            for use_numpy in ("--numpy", "--no-numpy"):
                with self.subTest(algorithm=algorithm, storage=use_numpy):
                    out_bytes = self._run_cli(
                        "find",
                        ["aa"],
                        extra_args=["--text", "aaaa", "--algorithm", algorithm, use_numpy],
                    )
                    self.assertEqual(out_bytes, b"0\n1\n2\n")

    def test_find_inline_text_multibyte(self):
        """Test --text input is encoded as UTF-8 and offsets are byte offsets."""
        out_bytes = self._run_cli("find", ["的中"], extra_args=["--text", "的中对不起我的中文不好"])
        self.assertEqual(out_bytes, b"0\n18\n")

    def test_find_hex_pattern(self):
        """Test --hex patterns can search for arbitrary bytes."""
        out_bytes = self._run_cli(
            "find", ["00ff"], extra_args=["--hex"], stdin_data=b"a\x00\xffb\x00\xff"
        )
        self.assertEqual(out_bytes, b"1\n4\n")

    def test_contains(self):
        """Test contains prints true or false."""
        self.assertEqual(self._run_cli("contains", ["ssi"], infile=self.infile), b"true\n")
        self.assertEqual(self._run_cli("contains", ["zz"], infile=self.infile), b"false\n")

    def test_count(self):
        """Test count includes overlapping occurrences."""
        self.assertEqual(self._run_cli("count", ["issi"], infile=self.infile), b"2\n")
        self.assertEqual(self._run_cli("count", ["z"], infile=self.infile), b"0\n")

    def test_replace_file_to_file(self):
        """Test replace writes the rewritten content to a file."""
        self._run_cli("replace", ["iss", "issi"], infile=self.infile, outfile=self.outfile)
        self.assertEqual(self.outfile.read_bytes(), b"Missiissiippi")
        # Input is left alone
        self.assertEqual(self.infile.read_bytes(), b"Mississippi")

    def test_replace_stdin_to_stdout(self):
        """Test replace can shrink the content."""
        out_bytes = self._run_cli(
            "replace", ["iss", ""], extra_args=["--algorithm", "bmh"], stdin_data=b"Mississippi"
        )
        self.assertEqual(out_bytes, b"Mippi")

    def test_replace_hex(self):
        """Test replace with hex patterns."""
        out_bytes = self._run_cli(
            "replace", ["0d0a", "0a"], extra_args=["--hex"], stdin_data=b"a\r\nb\r\n"
        )
        self.assertEqual(out_bytes, b"a\nb\n")

    def test_split(self):
        """Test split prints each field on its own line, empty fields included."""
        out_bytes = self._run_cli("split", ["|"], extra_args=["--text", "abc|def||ghi"])
        self.assertEqual(out_bytes, b"abc\ndef\n\nghi\n")

    def test_split_empty_input(self):
        """Test split of empty input prints a single empty field."""
        out_bytes = self._run_cli("split", [","], stdin_data=b"")
        self.assertEqual(out_bytes, b"\n")

    def test_invalid_hex_pattern(self):
        """Test that an invalid hex pattern prints an error and exits."""
        stderr = StringIO()
        with patch("sys.stderr", stderr), self.assertRaises(SystemExit) as context:
            self._run_cli("find", ["zz"], infile=self.infile, extra_args=["--hex"])
        self.assertEqual(context.exception.code, 1)
        self.assertIn("Error: Invalid hexadecimal pattern:", stderr.getvalue())

    def test_empty_pattern_warns(self):
        """Test that an empty pattern prints a warning and finds nothing."""
        stderr = StringIO()
        with patch("sys.stderr", stderr):
            out_bytes = self._run_cli("count", [""], infile=self.infile)
        self.assertEqual(out_bytes, b"0\n")
        self.assertIn("Warning: The pattern is empty; it matches nothing.", stderr.getvalue())

    def test_empty_old_pattern_warns_on_replace(self):
        """Test that replace with an empty OLD warns and leaves the input unchanged."""
        stderr = StringIO()
        with patch("sys.stderr", stderr):
            out_bytes = self._run_cli("replace", ["", "x"], infile=self.infile)
        self.assertEqual(out_bytes, b"Mississippi")
        self.assertIn("Warning: The pattern is empty; it matches nothing.", stderr.getvalue())

    def test_empty_delimiter_warns_on_split(self):
        """Test that split with an empty delimiter warns and prints the input as one field."""
        stderr = StringIO()
        with patch("sys.stderr", stderr):
            out_bytes = self._run_cli("split", [""], infile=self.infile)
        self.assertEqual(out_bytes, b"Mississippi\n")
        self.assertIn(
            "Warning: The delimiter is empty; the input is written as a single field.",
            stderr.getvalue(),
        )
        self.assertNotIn("it matches nothing", stderr.getvalue())

    def test_invalid_algorithm(self):
        """Test that argparse rejects an unknown algorithm."""
        stderr = StringIO()
        with patch("sys.stderr", stderr), self.assertRaises(SystemExit):
            self._run_cli("find", ["a"], infile=self.infile, extra_args=["--algorithm", "naive"])
        self.assertIn("invalid choice", stderr.getvalue())

    def test_text_and_infile_are_exclusive(self):
        """Test that --text and --infile cannot be combined."""
        stderr = StringIO()
        with patch("sys.stderr", stderr), self.assertRaises(SystemExit):
            self._run_cli("find", ["a"], infile=self.infile, extra_args=["--text", "abc"])
        self.assertIn("not allowed with argument", stderr.getvalue())

    def test_refuses_to_overwrite_existing_output(self):
        """Test that the CLI refuses to overwrite an existing output file."""
        out_path = self._write_file("output.txt", b"original data")
        stderr = StringIO()
        with patch("sys.stderr", stderr), self.assertRaises(SystemExit) as context:
            self._run_cli("replace", ["i", "a"], infile=self.infile, outfile=out_path)
        self.assertEqual(context.exception.code, 1)
        self.assertIn(
            f"Error: {out_path.resolve()} already exists. Refusing to overwrite.",
            stderr.getvalue(),
        )
        self.assertEqual(out_path.read_bytes(), b"original data")

    def test_relative_paths(self):
        """Test relative input and output paths resolve against the working directory."""
        with self._in_tempdir():
            self._run_cli("replace", ["ss", "SS"], infile="input.txt", outfile="output.txt")
        self.assertEqual(self.outfile.read_bytes(), b"MiSSiSSippi")

    def test_missing_input_file(self):
        """Test that providing a missing input file prints an error and exits."""
        missing_input = self.temp_dir_path / "doesnotexist_input.txt"
        stderr = StringIO()
        with patch("sys.stderr", stderr), self.assertRaises(SystemExit) as context:
            self._run_cli("find", ["a"], infile=missing_input)
        self.assertEqual(context.exception.code, 1)
        self.assertIn(f"Error: input file '{missing_input}' does not exist.", stderr.getvalue())

    def test_verbosity_info(self):
        """Test that info, warnings, and errors are printed with --verbosity info."""
        stderr = StringIO()
        with patch("sys.stderr", stderr):
            self._run_cli("count", [""], infile=self.infile, extra_args=["--verbosity", "info"])
        self.assertIn("strbuf CLI v", stderr.getvalue())
        self.assertIn("algorithm: kmp", stderr.getvalue())
        self.assertIn("Loaded 11 bytes of input.", stderr.getvalue())
        self.assertIn("The 'count' step took", stderr.getvalue())
        self.assertIn("Warning: The pattern is empty", stderr.getvalue())

        # Now, run a failed command to trigger an error (output.txt exists)
        self._write_file("output.txt", b"original data")
        stderr = StringIO()
        with patch("sys.stderr", stderr), self.assertRaises(SystemExit):
            self._run_cli(
                "count",
                ["i"],
                infile=self.infile,
                outfile=self.outfile,
                extra_args=["--verbosity", "info"],
            )
        self.assertIn("already exists. Refusing to overwrite.", stderr.getvalue())
        self.assertNotIn("The 'count' step", stderr.getvalue())

    def test_verbosity_warning(self):
        """Test that warnings and errors are printed with --verbosity warning (default). Info is not."""
        stderr = StringIO()
        with patch("sys.stderr", stderr):
            self._run_cli("count", [""], infile=self.infile)
        self.assertIn("Warning: The pattern is empty", stderr.getvalue())
        self.assertNotIn("strbuf CLI v", stderr.getvalue())
        self.assertNotIn("The 'count' step", stderr.getvalue())

    def test_verbosity_error(self):
        """Test that only errors are printed with --verbosity error and that warnings/info are not."""
        stderr = StringIO()
        with patch("sys.stderr", stderr):
            self._run_cli("count", [""], infile=self.infile, extra_args=["--verbosity", "error"])
        self.assertEqual(stderr.getvalue(), "")

        stderr = StringIO()
        with patch("sys.stderr", stderr), self.assertRaises(SystemExit):
            self._run_cli("find", ["zz"], infile=self.infile, extra_args=["--hex", "--verbosity", "error"])
        self.assertIn("Error: Invalid hexadecimal pattern:", stderr.getvalue())

    def test_verbosity_none(self):
        """Test that nothing is printed with --verbosity none, for info, warnings and errors."""
        stderr = StringIO()
        with patch("sys.stderr", stderr):
            self._run_cli("count", [""], infile=self.infile, extra_args=["--verbosity", "none"])
        self.assertEqual(stderr.getvalue(), "")

        stderr = StringIO()
        with patch("sys.stderr", stderr), self.assertRaises(SystemExit):
            self._run_cli("find", ["zz"], infile=self.infile, extra_args=["--hex", "--verbosity", "none"])
        self.assertEqual(stderr.getvalue(), "")

    def test_broken_pipe_error_handling(self):
        """Test that BrokenPipeError during output is handled gracefully."""
        fake_stdout = _FakeStdout(_BrokenPipeBytesIO())
        stderr = StringIO()
        with (
            patch("sys.stdout", fake_stdout),
            patch("sys.stderr", stderr),
            self.assertRaises(SystemExit) as context,
        ):
            self._run_cli("find", ["i"], infile=self.infile)
        self.assertEqual(context.exception.code, 1)
        self.assertIn("Error: I/O error during read/write:", stderr.getvalue())

    def test_parse_pattern(self):
        self.assertEqual(_parse_pattern("abc", False), b"abc")
        self.assertEqual(_parse_pattern("的", False), "的".encode())
        self.assertEqual(_parse_pattern("00 ff", True), b"\x00\xff")
        with self.assertRaises(ValueError):
            _parse_pattern("0", True)

    def test_vprint_levels(self):
        """Test that messages below the verbosity threshold are suppressed."""
        stderr = StringIO()
        with patch("sys.stderr", stderr):
            _vprint("info message", "info", "warning")
            _vprint("warning message", "warning", "warning")
            _vprint("error message", "error", "none")
        self.assertEqual(stderr.getvalue(), "warning message\n")


if __name__ == "__main__":
    unittest.main()
