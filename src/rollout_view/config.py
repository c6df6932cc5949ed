"""
Constants and render options for rollout-view.

Defines ANSI codes, the icon and info-tag vocabulary used in the tree
view, the fixed token-to-color table, and the CLI resource kind aliases.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

# ANSI escape codes
ESCAPE = "\x1b"
NO_FORMAT = 0
BOLD = 1
FG_BLACK = 30
FG_RED = 31
FG_GREEN = 32
FG_YELLOW = 33
FG_BLUE = 34
FG_MAGENTA = 35
FG_CYAN = 36
FG_WHITE = 37
FG_DEFAULT = 39
FG_HI_BLUE = 94

# Clear screen, then move the cursor home before each watch redraw.
CLEAR_SCREEN = f"{ESCAPE}[H{ESCAPE}[2J" + f"{ESCAPE}[0;0H"

# Status icons
ICON_WAITING = "◷"
ICON_PROGRESSING = "◌"
ICON_WARNING = "⚠"
ICON_UNKNOWN = "?"
ICON_OK = "✔"
ICON_BAD = "✖"
ICON_PAUSED = "॥"
ICON_NEUTRAL = "•"

# Kind icons
ICON_ROLLOUT = "⟳"
ICON_REVISION = "#"
ICON_REPLICA_SET = "⧉"
ICON_POD = "□"
ICON_JOB = "⊞"
ICON_SERVICE = "⑃"
ICON_EXPERIMENT = "Σ"
ICON_ANALYSIS = "α"

KIND_ICONS = {
    "Rollout": ICON_ROLLOUT,
    "Revision": ICON_REVISION,
    "ReplicaSet": ICON_REPLICA_SET,
    "Pod": ICON_POD,
    "Job": ICON_JOB,
    "Service": ICON_SERVICE,
    "Experiment": ICON_EXPERIMENT,
    "AnalysisRun": ICON_ANALYSIS,
}

# Info tags shown in the INFO column
TAG_CANARY = "canary"
TAG_STABLE = "stable"
TAG_ACTIVE = "active"
TAG_PREVIEW = "preview"
TAG_PING = "ping"
TAG_PONG = "pong"

# AnalysisRun / Experiment phases
PHASE_PENDING = "Pending"
PHASE_RUNNING = "Running"
PHASE_SUCCESSFUL = "Successful"
PHASE_FAILED = "Failed"
PHASE_ERROR = "Error"
PHASE_INCONCLUSIVE = "Inconclusive"

COLOR_MAPPING: Mapping[str, int] = MappingProxyType(
    {
        # Colors for icons (paused and neutral keep the terminal foreground)
        ICON_WAITING: FG_YELLOW,
        ICON_PROGRESSING: FG_HI_BLUE,
        ICON_WARNING: FG_RED,
        ICON_UNKNOWN: FG_YELLOW,
        ICON_OK: FG_GREEN,
        ICON_BAD: FG_RED,
        # Colors for canary/stable/preview tags
        TAG_CANARY: FG_YELLOW,
        TAG_STABLE: FG_GREEN,
        TAG_ACTIVE: FG_GREEN,
        TAG_PREVIEW: FG_HI_BLUE,
        TAG_PING: FG_HI_BLUE,
        TAG_PONG: FG_HI_BLUE,
        # Colors for highlighting experiments/analysisruns in flight
        PHASE_PENDING: FG_HI_BLUE,
        PHASE_RUNNING: FG_HI_BLUE,
    }
)

# Column layout for the summary block above the tree ("%-17s%v").
SUMMARY_LABEL_WIDTH = 17

TREE_HEADER = ("NAME", "KIND", "STATUS", "AGE", "INFO")

# CLI accepts singular, plural or short name; map to the kubectl plural kind name.
RESOURCE_ALIASES = {
    "rollout": "rollouts",
    "rollouts": "rollouts",
    "ro": "rollouts",
    "experiment": "experiments",
    "experiments": "experiments",
    "exp": "experiments",
}

# Kinds offered in the <kind>/<name> completion form.
COMPLETION_KINDS = ("rollouts",)

# Go template projecting object names as a space-delimited list.
NAME_TEMPLATE = "{{ range .items  }}{{ .metadata.name }} {{ end }}"

DEFAULT_INTERVAL = 2.0
KUBECTL_TIMEOUT = 60


def lookup_color(token: str) -> int:
    """Return the color code for a known token, or NO_FORMAT for anything else."""
    return COLOR_MAPPING.get(token, NO_FORMAT)


def terminal_supports_color(environ: Mapping[str, str]) -> bool:
    """A dumb terminal cannot render escape sequences."""
    return environ.get("TERM") != "dumb"


@dataclass(frozen=True)
class RenderOptions:
    """Per-invocation rendering and watch settings."""

    watch: bool = False
    no_color: bool = False
    timeout_seconds: int = 0
    interval: float = DEFAULT_INTERVAL
    color_supported: bool = True

    @property
    def color_enabled(self) -> bool:
        return not self.no_color and self.color_supported
