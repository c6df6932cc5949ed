"""Tests for resource name completion."""

import click
import pytest
from click.shell_completion import CompletionItem, get_completion_class
from click.testing import CliRunner

from rollout_view import cli, kubectl
from rollout_view.cli import get_rollout
from rollout_view.completion import (
    NameCompleter,
    NoSpaceBashComplete,
    ShellCompDirective,
    rollout_name_completion,
)
from rollout_view.config import NAME_TEMPLATE
from rollout_view.errors import CompletionLookupError


class Lister:
    """Fake templated listing returning canned names per kind."""

    def __init__(self, names=None, error=None):
        self.names = names or {}
        self.error = error
        self.calls = []

    def __call__(self, kind, namespace, template):
        self.calls.append((kind, namespace, template))
        if self.error:
            raise self.error
        return " ".join(self.names.get(kind, [])) + " "


def test_no_slash_no_matches_offers_kind_only():
    """With nothing to complete, only rollouts/ is offered and no space is added."""
    completer = NameCompleter(Lister({"rollout": ["guestbook"]}))
    comps, directive = completer.complete("roll")
    assert comps == ["rollouts/"]
    assert directive & ShellCompDirective.NO_SPACE
    assert directive & ShellCompDirective.NO_FILE_COMP


def test_no_slash_with_matches_keeps_space():
    completer = NameCompleter(Lister({"rollout": ["guestbook", "gue-canary", "other"]}))
    comps, directive = completer.complete("gue")
    assert comps == ["guestbook", "gue-canary"]
    assert directive == ShellCompDirective.NO_FILE_COMP


def test_empty_prefix_lists_everything_and_kind():
    completer = NameCompleter(Lister({"rollout": ["a", "b"]}))
    comps, directive = completer.complete("")
    assert comps == ["a", "b", "rollouts/"]
    assert not directive & ShellCompDirective.NO_SPACE


def test_names_that_match_kind_prefix_come_first():
    completer = NameCompleter(Lister({"rollout": ["rollme"]}))
    comps, _ = completer.complete("roll")
    assert comps == ["rollme", "rollouts/"]


def test_slash_form_completes_names_of_that_kind():
    """rollouts/gue yields rollouts/<name> for each name starting with gue."""
    lister = Lister({"rollouts": ["guestbook", "guess", "canary-demo"]})
    comps, directive = NameCompleter(lister).complete("rollouts/gue")
    assert comps == ["rollouts/guestbook", "rollouts/guess"]
    assert directive == ShellCompDirective.NO_FILE_COMP
    assert lister.calls == [("rollouts", None, NAME_TEMPLATE)]


def test_slash_form_uses_kind_override():
    lister = Lister({"experiments": ["exp-1"]})
    comps, _ = NameCompleter(lister).complete("experiments/")
    assert comps == ["experiments/exp-1"]


def test_namespace_passed_to_lister():
    lister = Lister({"rollout": ["guestbook"]})
    NameCompleter(lister).complete("g", namespace="app")
    assert lister.calls[0][1] == "app"


def test_lookup_error_yields_no_candidates():
    """A failing lookup never surfaces; completion just has no names."""
    completer = NameCompleter(Lister(error=CompletionLookupError("no current context")))
    assert completer.complete("rollouts/gue")[0] == []
    comps, directive = completer.complete("ro")
    assert comps == ["rollouts/"]
    assert directive & ShellCompDirective.NO_SPACE


def test_empty_names_are_dropped():
    completer = NameCompleter(lambda kind, ns, template: "  a  b ")
    assert completer.get_resource_names("rollout", "") == ["a", "b"]


def test_click_callback_uses_kubectl(monkeypatch):
    """The click argument hook lists names through kubectl and wraps them as items."""
    calls = []

    def fake_list_names(kind, namespace, template):
        calls.append((kind, namespace))
        return "guestbook canary "

    monkeypatch.setattr(kubectl, "list_names", fake_list_names)
    ctx = click.Context(get_rollout)
    ctx.params = {"namespace": "app"}
    items = rollout_name_completion(ctx, None, "gu")
    assert [item.value for item in items] == ["guestbook"]
    assert calls == [("rollout", "app")]


def test_undecodable_kubectl_output_yields_no_candidates(monkeypatch):
    def fake_run_kubectl(args, **kwargs):
        raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

    monkeypatch.setattr(kubectl, "run_kubectl", fake_run_kubectl)
    comps, directive = NameCompleter().complete("ro", "app")
    assert comps == ["rollouts/"]
    assert directive == ShellCompDirective.NO_SPACE | ShellCompDirective.NO_FILE_COMP


@pytest.fixture
def names(monkeypatch):
    monkeypatch.setattr(kubectl, "list_names", lambda kind, namespace, template: "guestbook canary ")


def test_click_callback_marks_nospace(names):
    """Only the kind-prefix form, which expects more typing, suppresses the space."""
    ctx = click.Context(get_rollout)
    ctx.params = {"namespace": None}
    items = rollout_name_completion(ctx, None, "ro")
    assert [(item.value, item.nospace) for item in items] == [("rollouts/", True)]
    items = rollout_name_completion(ctx, None, "gu")
    assert [(item.value, item.nospace) for item in items] == [("guestbook", False)]


def test_bash_completion_class_is_registered():
    assert get_completion_class("bash") is NoSpaceBashComplete


def test_bash_format_completion():
    comp = NoSpaceBashComplete(cli.main, {}, "rollout-view", "_ROLLOUT_VIEW_COMPLETE")
    assert comp.format_completion(CompletionItem("rollouts/", nospace=True)) == "nospace,rollouts/"
    assert comp.format_completion(CompletionItem("guestbook", nospace=False)) == "plain,guestbook"
    assert comp.format_completion(CompletionItem("guestbook")) == "plain,guestbook"


def test_bash_script_turns_off_trailing_space():
    script = NoSpaceBashComplete.source_template
    assert "elif [[ $type == 'nospace' ]]; then" in script
    assert "compopt -o nospace" in script
    assert script.index("'nospace'") < script.index("'plain'")


def test_bash_complete_end_to_end(names):
    runner = CliRunner()
    result = runner.invoke(
        cli.main,
        prog_name="rollout-view",
        env={
            "_ROLLOUT_VIEW_COMPLETE": "bash_complete",
            "COMP_WORDS": "rollout-view get rollout ro",
            "COMP_CWORD": "3",
        },
    )
    assert result.exit_code == 0
    assert result.output == "nospace,rollouts/\n"
