"""Tests for rollout-view config."""

import pytest

from rollout_view.config import (
    COLOR_MAPPING,
    COMPLETION_KINDS,
    FG_GREEN,
    FG_HI_BLUE,
    FG_RED,
    FG_YELLOW,
    ICON_BAD,
    ICON_NEUTRAL,
    ICON_OK,
    ICON_PAUSED,
    ICON_PROGRESSING,
    ICON_UNKNOWN,
    ICON_WAITING,
    ICON_WARNING,
    NO_FORMAT,
    RESOURCE_ALIASES,
    RenderOptions,
    lookup_color,
    terminal_supports_color,
)


@pytest.mark.parametrize(
    "token,code",
    [
        (ICON_WAITING, FG_YELLOW),
        (ICON_PROGRESSING, FG_HI_BLUE),
        (ICON_WARNING, FG_RED),
        (ICON_UNKNOWN, FG_YELLOW),
        (ICON_OK, FG_GREEN),
        (ICON_BAD, FG_RED),
        ("canary", FG_YELLOW),
        ("stable", FG_GREEN),
        ("active", FG_GREEN),
        ("preview", FG_HI_BLUE),
        ("ping", FG_HI_BLUE),
        ("pong", FG_HI_BLUE),
        ("Pending", FG_HI_BLUE),
        ("Running", FG_HI_BLUE),
    ],
)
def test_lookup_color_known_tokens(token, code):
    """Every known token maps to its fixed, non-sentinel color."""
    assert lookup_color(token) == code
    assert lookup_color(token) != NO_FORMAT


@pytest.mark.parametrize("token", ["", "Healthy", ICON_PAUSED, ICON_NEUTRAL, "ready:1/1", "CANARY"])
def test_lookup_color_unknown_tokens(token):
    """Unknown tokens return the no-color sentinel instead of failing."""
    assert lookup_color(token) == NO_FORMAT


def test_color_mapping_is_read_only():
    """The color table cannot be modified at runtime."""
    with pytest.raises(TypeError):
        COLOR_MAPPING["canary"] = FG_RED


def test_resource_aliases_singular_plural():
    """Rollouts and experiments have singular, plural and short aliases."""
    assert RESOURCE_ALIASES["rollout"] == "rollouts"
    assert RESOURCE_ALIASES["rollouts"] == "rollouts"
    assert RESOURCE_ALIASES["ro"] == "rollouts"
    assert RESOURCE_ALIASES["experiment"] == "experiments"
    assert RESOURCE_ALIASES["exp"] == "experiments"


def test_completion_kinds_are_known_plurals():
    """Every completion kind is a kubectl plural kind we alias."""
    for kind in COMPLETION_KINDS:
        assert kind in RESOURCE_ALIASES.values()


def test_dumb_terminal_disables_color():
    """TERM=dumb means no color support; anything else keeps color."""
    assert terminal_supports_color({"TERM": "dumb"}) is False
    assert terminal_supports_color({"TERM": "xterm-256color"}) is True
    assert terminal_supports_color({}) is True


def test_render_options_color_enabled():
    """Color needs both the flag unset and a capable terminal."""
    assert RenderOptions().color_enabled
    assert not RenderOptions(no_color=True).color_enabled
    assert not RenderOptions(color_supported=False).color_enabled
