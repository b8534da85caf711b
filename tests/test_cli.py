"""Tests for the mbench command line."""

import io

import pytest

from mbench import __version__
from mbench.cli import main


@pytest.fixture
def values_file(tmp_path):
    path = tmp_path / "values.txt"
    path.write_text("0 1 2\n")
    return path


class TestCli:
    def test_summary(self, values_file, capsys):
        assert main(["--op=exp", "--threads=1", str(values_file)]) == 0
        out = capsys.readouterr().out
        assert out.startswith("exp: ")
        assert "1 repetitions 3 ops" in out
        assert "exceptions: none" in out

    def test_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("0.5 0.25"))
        assert main(["--op", "sqrtf", "--threads", "1", "-"]) == 0
        assert capsys.readouterr().out.startswith("sqrtf: ")

    def test_repeat_and_min_ops(self, values_file, capsys):
        assert main(["--op=cos", "--repeat=2", "--min-ops=9", "--threads=1", str(values_file)]) == 0
        assert "3 repetitions 9 ops" in capsys.readouterr().out

    def test_quiet(self, values_file, capsys):
        assert main(["-q", "--threads=1", str(values_file)]) == 0
        captured = capsys.readouterr()
        assert captured.out == ""

    def test_verbose_prints_values(self, values_file, capsys):
        assert main(["-v", "--out-precision=3", "--threads=1", str(values_file)]) == 0
        err = capsys.readouterr().err
        assert "1.000 2.718 7.389" in err

    def test_field_width(self, values_file, capsys):
        argv = ["-v", "--op=sqrt", "--out-field-width=6", "--out-precision=1", "--threads=1", str(values_file)]
        assert main(argv) == 0
        assert "   0.0    1.0    1.4" in capsys.readouterr().err

    def test_list_ops(self, capsys):
        assert main(["--list-ops"]) == 0
        out = capsys.readouterr().out
        assert "exponential:" in out
        assert "exp10f" in out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_unknown_op(self, values_file, capsys):
        assert main(["--op=sec", str(values_file)]) == 1
        assert "mbench: Unknown operation: 'sec'" in capsys.readouterr().err

    def test_bad_repeat(self, values_file, capsys):
        assert main(["--repeat=0", str(values_file)]) == 1
        assert "repeat must be >= 1" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.txt")]) == 1
        assert capsys.readouterr().err.startswith("mbench: ")

    def test_bad_input(self, tmp_path, capsys):
        path = tmp_path / "bad.txt"
        path.write_text("1 x 3")
        assert main([str(path)]) == 1
        assert "Invalid value 'x' at position 1" in capsys.readouterr().err

    def test_math_error(self, tmp_path, capsys):
        path = tmp_path / "zero.txt"
        path.write_text("0")
        assert main(["--op=log", "-v", "--threads=1", str(path)]) == 1
        err = capsys.readouterr().err
        assert "mbench: log:" in err
        assert "divide-by-zero" in err
        assert "-inf" in err

    def test_config_file(self, values_file, tmp_path, capsys):
        cfg = tmp_path / "run.yml"
        cfg.write_text("op: exp2\nrepeat: 2\nthreads: 1\n")
        assert main(["--config", str(cfg), str(values_file)]) == 0
        out = capsys.readouterr().out
        assert out.startswith("exp2: ")
        assert "2 repetitions 6 ops" in out

    def test_cli_overrides_config(self, values_file, tmp_path, capsys):
        cfg = tmp_path / "run.yml"
        cfg.write_text("op: exp2\nthreads: 1\n")
        assert main(["--config", str(cfg), "--op=log1p", str(values_file)]) == 0
        assert capsys.readouterr().out.startswith("log1p: ")

    def test_full_labels(self, tmp_path, capsys):
        path = tmp_path / "v.txt"
        path.write_text("0 -1")
        cfg = tmp_path / "run.yml"
        cfg.write_text("op: log\nthreads: 1\nmath_errhandling: [except]\n")
        assert main(["--config", str(cfg), "--labels=full", str(path)]) == 0
        assert "exceptions: divide-by-zero,invalid" in capsys.readouterr().out
