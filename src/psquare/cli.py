import argparse
import contextlib
import json
import math
import re
import sys
from typing import Any, Dict, Iterator, Optional, TextIO

from rich.console import Console
from rich.table import Table

from . import __version__
from .bench import run as run_bench, synthetic_values
from .config import QUANTILE_PRESETS, TrackConfig
from .errors import QuantileError
from .logutil import get_logger, set_verbose
from .metrics import state_metrics
from .quantiles import P2Quantile, estimate

_TOKEN_SPLIT = re.compile(r"[\s,;]+")


def iter_numbers(handle: TextIO) -> Iterator[float]:
    """Yield every finite number in ``handle``; separators are whitespace, commas or semicolons."""
    log = get_logger()
    for lineno, line in enumerate(handle, start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        for token in _TOKEN_SPLIT.split(line):
            if not token:
                continue
            try:
                x = float(token)
            except ValueError:
                log.warning("line %d: skipped non-numeric token %r", lineno, token)
                continue
            if not math.isfinite(x):
                log.warning("line %d: skipped non-finite value %r", lineno, token)
                continue
            yield x


@contextlib.contextmanager
def _open_input(path: Optional[str]) -> Iterator[TextIO]:
    if path is None or path == "-":
        yield sys.stdin
        return
    with open(path, "r", encoding="utf-8", errors="replace") as handle:
        yield handle


def _write_json(path: str, payload: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)
    print(f"Wrote JSON to {path}")


def _maybe_console(args: argparse.Namespace) -> Optional[Console]:
    if getattr(args, "no_color", False):
        return None
    # force_terminal ensures ANSI codes even when output is being captured (for tests)
    return Console(color_system="truecolor", stderr=False, force_terminal=True)


def build_config(args: argparse.Namespace) -> TrackConfig:
    cfg = TrackConfig()
    if getattr(args, "quantile", None) is not None:
        cfg.quantile = args.quantile
    # --quantiles beats --preset beats --quantile
    if getattr(args, "preset", None):
        cfg.quantiles = QUANTILE_PRESETS[args.preset]
    if getattr(args, "quantiles", None):
        cfg.quantiles = tuple(args.quantiles)
    if getattr(args, "every", None) is not None:
        cfg.report_every = max(0, int(args.every))
    if getattr(args, "precision", None) is not None:
        if args.precision < 0:
            raise ValueError(f"--precision must be non-negative, got {args.precision}")
        cfg.precision = args.precision
    return cfg


def _load_config(args: argparse.Namespace) -> Optional[TrackConfig]:
    try:
        return build_config(args)
    except ValueError as exc:
        print(f"[psquare] {exc}", file=sys.stderr)
        return None


def _format_estimates(est: P2Quantile, precision: int) -> str:
    parts = [f"p{q:g}={v:.{precision}f}" for q, v in est.estimates()]
    return f"n={est.count} " + " ".join(parts)


def cmd_estimate(args: argparse.Namespace) -> int:
    cfg = _load_config(args)
    if cfg is None:
        return 2
    try:
        with _open_input(args.file) as handle:
            value = estimate(iter_numbers(handle), cfg.quantile)
    except FileNotFoundError:
        print(f"[psquare] input not found: {args.file}", file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"[psquare] cannot read {args.file}: {exc}", file=sys.stderr)
        return 2
    except QuantileError as exc:
        print(f"[psquare] {exc}", file=sys.stderr)
        return 2
    print(f"p={cfg.quantile:g} estimate={value:.{cfg.precision}f}")
    if args.json:
        _write_json(args.json, {"quantile": cfg.quantile, "estimate": value})
    return 0


def cmd_track(args: argparse.Namespace) -> int:
    cfg = _load_config(args)
    if cfg is None:
        return 2
    try:
        est = P2Quantile(cfg.targets)
    except QuantileError as exc:
        print(f"[psquare] {exc}", file=sys.stderr)
        return 2
    console = _maybe_console(args)
    try:
        with _open_input(args.file) as handle:
            for x in iter_numbers(handle):
                est.update(x)
                if cfg.report_every and est.count % cfg.report_every == 0:
                    print(_format_estimates(est, cfg.precision))
    except FileNotFoundError:
        print(f"[psquare] input not found: {args.file}", file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"[psquare] cannot read {args.file}: {exc}", file=sys.stderr)
        return 2

    if est.state is None:
        get_logger().warning("only %d observations; reporting exact sample quantiles", est.count)
    if console is not None:
        table = Table(title=f"P2 estimates (n={est.count})")
        table.add_column("quantile", justify="right", style="cyan")
        table.add_column("estimate", justify="right", style="bold green")
        for q, v in est.estimates():
            table.add_row(f"{q:g}", f"{v:.{cfg.precision}f}")
        console.print(table)
    else:
        print("final " + _format_estimates(est, cfg.precision))

    if args.json:
        if est.state is not None:
            payload = state_metrics(est.state)
        else:
            payload = {
                "count": est.count,
                "estimates": [{"quantile": q, "value": v} for q, v in est.estimates()],
            }
        _write_json(args.json, payload)
    return 0


def cmd_bench(args: argparse.Namespace) -> int:
    if args.count < 1 or args.warm < 0:
        print("[psquare] --count must be positive and --warm non-negative", file=sys.stderr)
        return 2
    run_bench(synthetic_values(5 + args.warm + args.count, seed=args.seed), args.warm)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="psquare", description="Streaming P2 quantile estimates for numeric data.")
    # Global --version (argparse will exit 0 before validating subcommands)
    parser.add_argument(
        "--version",
        action="version",
        version=f"psquare {__version__}",
        help="Show version and exit",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="cmd")

    estimate_parser = sub.add_parser("estimate", help="Estimate one quantile over a whole file")
    estimate_parser.add_argument("file", nargs="?", help="Numbers file (stdin when omitted or '-')")
    estimate_parser.add_argument("--quantile", type=float, help="Target quantile in (0,1) (default 0.5)")
    estimate_parser.add_argument("--precision", type=int, help="Digits after the decimal point")
    estimate_parser.add_argument("--json", help="Write the estimate as JSON to this path")
    estimate_parser.set_defaults(func=cmd_estimate)

    track_parser = sub.add_parser("track", help="Stream numbers and report running estimates")
    track_parser.add_argument("file", nargs="?", help="Numbers file (stdin when omitted or '-')")
    track_parser.add_argument("--quantile", type=float, help="Single target quantile; markers track p/2, p, (1+p)/2")
    track_parser.add_argument("--quantiles", nargs=3, type=float, metavar="P", help="Three ascending quantiles to track")
    track_parser.add_argument(
        "--preset",
        choices=sorted(QUANTILE_PRESETS.keys()),
        help="Named set of three quantiles",
    )
    track_parser.add_argument("--every", type=int, help="Report every N observations (0 disables)")
    track_parser.add_argument("--precision", type=int, help="Digits after the decimal point")
    track_parser.add_argument("--json", help="Write the final marker snapshot to this path")
    track_parser.add_argument("--no-color", action="store_true", help="Plain text output instead of a rich table")
    track_parser.set_defaults(func=cmd_track)

    bench_parser = sub.add_parser("bench", help="Run a quick throughput benchmark of observe()")
    bench_parser.add_argument("--count", type=int, default=100000, help="Observations to measure")
    bench_parser.add_argument("--warm", type=int, default=1000, help="Warm-up observations (not timed)")
    bench_parser.add_argument("--seed", type=int, default=0, help="Seed for the synthetic samples")
    bench_parser.set_defaults(func=cmd_bench)

    # Simple 'version' subcommand for shells/users preferring explicit command
    version_parser = sub.add_parser("version", help="Show version and exit")
    version_parser.set_defaults(func=lambda _: (print(f"psquare {__version__}"), 0)[1])

    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    set_verbose(args.verbose)
    if not getattr(args, "cmd", None):  # No subcommand provided
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
