"""Command-line interface for PortClear."""

import argparse
import json
import re
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape

from .config import APP_NAME, COMMAND_TIMEOUT_SECONDS, DEFAULT_METHOD, MAX_WORKERS, METHODS, VERSION
from .core import BatchOutcome, PortResolver, get_strategy, resolve_batch
from .utils.logging_config import get_logger

logger = get_logger('cli')

console = Console(highlight=False, emoji=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, emoji=False, soft_wrap=True)

_RANGE = re.compile(r"^(\d+)-(\d+)$")

EPILOG = """\
examples:
  portclear 3000
  portclear 3000 8080 9000
  portclear 3000-3010
  portclear -p 3000,8080 -m udp
  portclear 3000 --list
  portclear 3000 --tree -v
  portclear --from 8000 --to 8005 --json
"""


def expand_port_tokens(tokens: Sequence[str]) -> list:
    """
    Expand "3000", "3000,3001" and "3000-3010" tokens into ports.

    Ranges are inclusive and swapped if given backwards. Anything that is
    not numeric is kept as-is so it fails on its own as an invalid port.
    """
    ports: list = []
    for token in tokens:
        for part in str(token).split(","):
            part = part.strip()
            if not part:
                continue
            match = _RANGE.match(part)
            if match:
                start, end = int(match.group(1)), int(match.group(2))
                if start > end:
                    start, end = end, start
                ports.extend(range(start, end + 1))
            elif part.isdigit():
                ports.append(int(part))
            else:
                ports.append(part)
    return ports


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Kill (or list) the process running on any given port",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("ports", nargs="*", metavar="PORT",
                        help="Port, comma-separated ports, or a range like 3000-3010")
    parser.add_argument("-p", "--port", action="append", default=[], dest="port_flags", metavar="PORTS",
                        help="Port number(s) to kill (supports comma-separated lists and ranges)")
    parser.add_argument("-m", "--method", default=DEFAULT_METHOD, metavar="METHOD",
                        help=f"Protocol method: {' or '.join(METHODS)} (default: {DEFAULT_METHOD})")
    parser.add_argument("-l", "--list", action="store_true", dest="list_only",
                        help="Show the process on the port without killing it")
    parser.add_argument("-t", "--tree", action="store_true",
                        help="Also kill child processes")
    parser.add_argument("--from", type=int, dest="range_from", metavar="N",
                        help="First port of an inclusive range")
    parser.add_argument("--to", type=int, dest="range_to", metavar="N",
                        help="Last port of an inclusive range")
    output = parser.add_mutually_exclusive_group()
    output.add_argument("-v", "--verbose", action="store_true", help="Show detailed output")
    output.add_argument("-q", "--quiet", action="store_true", help="Only report failures")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--timeout", type=float, default=COMMAND_TIMEOUT_SECONDS, metavar="SECONDS",
                        help=f"Timeout for each system command (default: {COMMAND_TIMEOUT_SECONDS})")
    parser.add_argument("--workers", type=int, default=MAX_WORKERS, metavar="N",
                        help=f"Ports handled in parallel (default: {MAX_WORKERS})")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def collect_ports(args: argparse.Namespace) -> list:
    """All requested ports in order, duplicates removed."""
    tokens = list(args.ports) + list(args.port_flags)
    ports = expand_port_tokens(tokens)

    if args.range_from is not None or args.range_to is not None:
        start = args.range_from if args.range_from is not None else args.range_to
        end = args.range_to if args.range_to is not None else args.range_from
        if start > end:
            start, end = end, start
        ports.extend(range(start, end + 1))

    seen = set()
    unique_ports = []
    for port in ports:
        key = str(port)
        if key in seen:
            continue
        seen.add(key)
        unique_ports.append(port)
    return unique_ports


def summarize(outcomes: Sequence[BatchOutcome]) -> dict:
    killed = sum(1 for o in outcomes if o.success and o.result.terminated)
    listed = sum(1 for o in outcomes if o.success and o.result.is_inspect_only)
    failed = sum(1 for o in outcomes if not o.success)
    return {
        'total': len(outcomes),
        'killed': killed,
        'listed': listed,
        'failed': failed,
    }


def render_json(outcomes: Sequence[BatchOutcome]) -> str:
    payload = {
        'summary': summarize(outcomes),
        'results': [o.to_dict() for o in outcomes],
    }
    return json.dumps(payload, indent=2)


def render_outcome(outcome: BatchOutcome, verbose: bool = False, quiet: bool = False):
    """Print one port's outcome to the console."""
    label = escape(outcome.port_label)

    if not outcome.success:
        error = outcome.error
        err_console.print(f"[red]✗[/red] Port {label}: {escape(str(error))}")
        if verbose and error is not None and error.detail:
            err_console.print(f"  Error details: {escape(error.detail.strip())}", style="dim")
        return

    if quiet:
        return

    result = outcome.result
    if result.is_inspect_only:
        name = escape(result.process_name or "unknown")
        if result.primary_pid is not None:
            console.print(f"[green]✓[/green] Port {label}: {name} (PID: {result.primary_pid})")
        else:
            pids = ", ".join(str(pid) for pid in result.pids)
            console.print(f"[green]✓[/green] Port {label}: {name} (PIDs: {pids})")
    else:
        console.print(f"[green]✓[/green] Process on port {label} killed successfully")

    if verbose:
        console.print(f"  Platform: {escape(result.platform)}", style="dim")
        console.print(f"  PIDs: {', '.join(str(pid) for pid in result.pids)}", style="dim")
        if result.process_name and not result.is_inspect_only:
            console.print(f"  Name: {escape(result.process_name)}", style="dim")
        if result.raw_output:
            console.print(f"  Output: {escape(result.raw_output.strip())}", style="dim")


def run(argv: Optional[Sequence[str]] = None, resolver: Optional[PortResolver] = None) -> int:
    """Parse argv, resolve every port and report. Returns the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    ports = collect_ports(args)
    if not ports:
        parser.print_help()
        return 1

    if resolver is None:
        resolver = PortResolver(get_strategy(timeout=args.timeout))

    logger.debug(f"CLI ports={ports} method={args.method} list={args.list_only} tree={args.tree}")
    outcomes = resolve_batch(
        ports,
        method=args.method,
        list_only=args.list_only,
        tree=args.tree,
        max_workers=args.workers,
        resolver=resolver,
    )

    if args.json:
        print(render_json(outcomes))
    else:
        for outcome in outcomes:
            render_outcome(outcome, args.verbose, args.quiet)

    return 0 if all(o.success for o in outcomes) else 1
