"""Settings that control how a collection run behaves."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cryokit.cli_args import Args
from cryokit.errors import ParseError


@dataclass
class ExecutionEnv:
    """How a run behaves: dry run, verbosity, reporting and progress."""

    dry: bool = False
    verbose: int = 1
    report: bool = True
    report_dir: Optional[Path] = None
    args: Optional[str] = None
    n_tasks: Optional[int] = None
    t_start_parse: Optional[float] = None
    t_start: Optional[float] = None


def parse_execution_env(args: Args, n_tasks: int) -> ExecutionEnv:
    """Build the execution settings from command line arguments.

    ``n_tasks`` sizes the progress bar, which is left out when running quietly.
    """
    try:
        args_str = json.dumps(args.to_dict(), separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise ParseError(str(exc)) from exc

    if args.no_verbose and args.verbose:
        raise ParseError("")
    if args.no_verbose:
        verbose = 0
    elif args.verbose:
        verbose = 2
    else:
        verbose = 1

    return ExecutionEnv(
        dry=args.dry,
        verbose=verbose,
        report=not args.no_report,
        report_dir=args.report_dir,
        args=args_str,
        n_tasks=None if args.no_verbose else n_tasks,
    )