import sys
import json
import subprocess
from pathlib import Path


def run_cli(args, cwd=None, stdin=None):
    proc = subprocess.run([sys.executable, "-m", "psquare.cli", *args], capture_output=True, text=True, cwd=cwd, input=stdin)
    return proc


def make_numbers(tmp_path: Path, values, name: str = "data.txt") -> Path:
    p = tmp_path / name
    p.write_text("\n".join(str(v) for v in values) + "\n", encoding="utf-8")
    return p


def test_estimate_median(tmp_path):
    data = make_numbers(tmp_path, range(11))
    proc = run_cli(["estimate", str(data), "--quantile", "0.5"])
    assert proc.returncode == 0, proc.stderr
    assert "p=0.5 estimate=5.000000" in proc.stdout


def test_estimate_from_stdin_with_mixed_separators():
    proc = run_cli(["estimate", "-", "--precision", "2"], stdin="0, 1, 2\n3;4 5\n# comment\n6 7 8 9 10\n")
    assert proc.returncode == 0, proc.stderr
    assert "estimate=5.00" in proc.stdout


def test_estimate_json_output(tmp_path):
    data = make_numbers(tmp_path, range(100))
    json_out = tmp_path / "estimate.json"
    proc = run_cli(["estimate", str(data), "--quantile", "0.9", "--json", str(json_out)])
    assert proc.returncode == 0, proc.stderr
    payload = json.loads(json_out.read_text(encoding="utf-8"))
    assert payload["quantile"] == 0.9
    assert 80.0 < payload["estimate"] < 99.0


def test_estimate_insufficient_data(tmp_path):
    data = make_numbers(tmp_path, [1, 2, 3, 4])
    proc = run_cli(["estimate", str(data)])
    assert proc.returncode == 2
    assert "[psquare]" in proc.stderr


def test_estimate_invalid_quantile(tmp_path):
    data = make_numbers(tmp_path, range(10))
    proc = run_cli(["estimate", str(data), "--quantile", "1.5"])
    assert proc.returncode == 2
    assert "quantile" in proc.stderr


def test_estimate_missing_file(tmp_path):
    proc = run_cli(["estimate", str(tmp_path / "nope.txt")])
    assert proc.returncode == 2
    assert "not found" in proc.stderr


def test_malformed_tokens_are_skipped_with_warning(tmp_path):
    data = tmp_path / "dirty.txt"
    data.write_text("1 2 abc 3\nnan 4\n5 6\n", encoding="utf-8")
    proc = run_cli(["estimate", str(data)])
    assert proc.returncode == 0, proc.stderr
    assert "skipped non-numeric token 'abc'" in proc.stderr
    assert "skipped non-finite value 'nan'" in proc.stderr


def test_track_reports_every_n(tmp_path):
    data = make_numbers(tmp_path, range(20))
    proc = run_cli(["track", str(data), "--every", "5", "--no-color"])
    assert proc.returncode == 0, proc.stderr
    lines = [ln for ln in proc.stdout.strip().splitlines() if ln]
    assert [ln.split()[0] for ln in lines] == ["n=5", "n=10", "n=15", "n=20", "final"]
    assert lines[-1].startswith("final n=20 p0.25=")


def test_track_preset_and_json(tmp_path):
    data = make_numbers(tmp_path, range(1000))
    json_out = tmp_path / "snapshot.json"
    proc = run_cli(["track", str(data), "--preset", "tail", "--every", "0", "--no-color", "--json", str(json_out)])
    assert proc.returncode == 0, proc.stderr
    assert "p0.999=" in proc.stdout
    snap = json.loads(json_out.read_text(encoding="utf-8"))
    for key in ["count", "heights", "positions", "desired_positions", "increments", "estimates"]:
        assert key in snap, f"missing {key} in snapshot"
    assert snap["count"] == 1000
    assert [e["quantile"] for e in snap["estimates"]] == [0.95, 0.99, 0.999]


def test_track_warm_up_is_exact(tmp_path):
    data = make_numbers(tmp_path, [4, 1, 3])
    proc = run_cli(["track", str(data), "--quantile", "0.5", "--no-color"])
    assert proc.returncode == 0, proc.stderr
    assert "p0.5=3.000000" in proc.stdout
    assert "exact sample quantiles" in proc.stderr


def test_track_rejects_unordered_quantiles(tmp_path):
    data = make_numbers(tmp_path, range(10))
    proc = run_cli(["track", str(data), "--quantiles", "0.5", "0.3", "0.7"])
    assert proc.returncode == 2
    assert "[psquare]" in proc.stderr


def test_no_subcommand_prints_help():
    proc = run_cli([])
    assert proc.returncode == 0
    assert "usage" in proc.stdout.lower()


def test_estimate_directory_input(tmp_path):
    proc = run_cli(["estimate", str(tmp_path)])
    assert proc.returncode == 2
    assert "[psquare] cannot read" in proc.stderr
    assert "Traceback" not in proc.stderr


def test_track_directory_input(tmp_path):
    proc = run_cli(["track", str(tmp_path), "--no-color"])
    assert proc.returncode == 2
    assert "Traceback" not in proc.stderr


def test_negative_precision_rejected(tmp_path):
    data = make_numbers(tmp_path, range(10))
    for cmd in (["estimate"], ["track", "--no-color"]):
        proc = run_cli([*cmd, str(data), "--precision", "-1"])
        assert proc.returncode == 2
        assert "--precision must be non-negative" in proc.stderr
        assert "Traceback" not in proc.stderr
