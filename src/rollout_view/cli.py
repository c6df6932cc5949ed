"""
CLI entry point for rollout-view.

Parses options and arguments, then hands a fetcher for the requested
Rollout or Experiment to the watch loop. Cluster access uses the current
kubectl context.
"""

from __future__ import annotations

import logging
import os
import signal
import sys
from typing import Optional

import click

from .completion import rollout_name_completion
from .config import DEFAULT_INTERVAL, RESOURCE_ALIASES, RenderOptions, terminal_supports_color
from .errors import FetchError
from .info import fetch_experiment, fetch_rollout
from .tree import TreeRenderer
from .watch import Fetcher, WatchLoop

logger = logging.getLogger(__name__)

# Shown at the bottom of rollout-view --help / rollout-view -h
EPILOG = """
Examples:

\b
  rollout-view get rollout guestbook              # Show a rollout and its children
  rollout-view get rollout rollouts/guestbook     # Same, <kind>/<name> form
  rollout-view get rollout guestbook -w           # Watch a rollout's progress
  rollout-view get rollout guestbook -w --timeout-seconds 300
  rollout-view get experiment my-experiment -n app
  rollout-view get rollout guestbook --no-color   # Plain output (also when TERM=dumb)

Every option can also be set as ROLLOUT_VIEW_<COMMAND>_<OPTION>, e.g.
ROLLOUT_VIEW_GET_ROLLOUT_NO_COLOR=1.
"""

GET_USAGE = """
Tree view icons

\b
  ⟳  Rollout
  Σ  Experiment
  α  AnalysisRun
  #  Revision
  ⧉  ReplicaSet
  □  Pod
  ⊞  Job
"""


def watch_options(f):
    """Options shared by every get subcommand."""
    decorators = [
        click.option(
            "-n",
            "--namespace",
            "namespace",
            metavar="NS",
            help="Namespace of the resource (defaults to the kubectl context namespace)",
        ),
        click.option("-w", "--watch", is_flag=True, help="Watch live updates until interrupted"),
        click.option("--no-color", is_flag=True, help="Do not colorize output"),
        click.option(
            "--timeout-seconds",
            type=click.IntRange(min=0),
            default=0,
            show_default=True,
            help="Stop watching after this many seconds (0 watches forever)",
        ),
        click.option(
            "--interval",
            type=click.FloatRange(min=0.1),
            default=DEFAULT_INTERVAL,
            show_default=True,
            help="Seconds between redraws in watch mode",
        ),
    ]
    for decorator in reversed(decorators):
        f = decorator(f)
    return f


def split_name(expected_kind: str, value: str) -> str:
    """Accept NAME or <kind>/NAME where kind is an alias of expected_kind."""
    if "/" not in value:
        return value
    kind, name = value.split("/", 1)
    if RESOURCE_ALIASES.get(kind.lower()) != expected_kind or not name:
        raise click.BadParameter(f"expected {expected_kind}/<name>, got {value!r}", param_hint="NAME")
    return name


def run_get(fetch: Fetcher, watch: bool, no_color: bool, timeout_seconds: int, interval: float) -> None:
    """Render once or watch, turning fetch failures into a non-zero exit."""
    options = RenderOptions(
        watch=watch,
        no_color=no_color,
        timeout_seconds=timeout_seconds,
        interval=interval,
        color_supported=terminal_supports_color(os.environ),
    )
    loop = WatchLoop(fetch, TreeRenderer(options), options, sys.stdout)
    previous = signal.signal(signal.SIGTERM, lambda signum, frame: loop.stop())
    try:
        loop.run()
    except KeyboardInterrupt:
        loop.stop()
        logger.debug("interrupted")
    except FetchError as e:
        raise click.ClickException(str(e)) from e
    finally:
        signal.signal(signal.SIGTERM, previous)


@click.group(
    context_settings={"help_option_names": ["-h", "--help"], "auto_envvar_prefix": "ROLLOUT_VIEW"},
    epilog=EPILOG,
)
@click.option("-v", "--verbose", is_flag=True, help="Log kubectl calls and retries to stderr")
def main(verbose: bool) -> None:
    """
    Show Argo Rollouts resources as a live, colorized tree.

    Renders a Rollout or Experiment with its revisions, ReplicaSets, Pods,
    AnalysisRuns and Jobs.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@main.group(epilog=GET_USAGE)
def get() -> None:
    """Get details about rollouts and experiments."""


@get.command("rollout")
@watch_options
@click.argument("name", shell_complete=rollout_name_completion)
def get_rollout(
    namespace: Optional[str],
    watch: bool,
    no_color: bool,
    timeout_seconds: int,
    interval: float,
    name: str,
) -> None:
    """Show a rollout and the tree of resources it owns."""
    name = split_name("rollouts", name)
    run_get(fetch_rollout(name, namespace), watch, no_color, timeout_seconds, interval)


@get.command("experiment")
@watch_options
@click.argument("name")
def get_experiment(
    namespace: Optional[str],
    watch: bool,
    no_color: bool,
    timeout_seconds: int,
    interval: float,
    name: str,
) -> None:
    """Show an experiment and the tree of resources it owns."""
    name = split_name("experiments", name)
    run_get(fetch_experiment(name, namespace), watch, no_color, timeout_seconds, interval)


if __name__ == "__main__":
    sys.exit(main())
