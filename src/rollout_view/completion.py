"""
Shell completion of resource names.

Completes either a bare name of the default kind or the <kind>/<name>
form. Listing is delegated to kubectl; any lookup failure yields no
candidates so shell input is never broken.
"""

from __future__ import annotations

import enum
import logging
import re
from typing import Callable, Optional

from click.shell_completion import BashComplete, CompletionItem, add_completion_class

from . import kubectl
from .config import COMPLETION_KINDS, NAME_TEMPLATE
from .errors import CompletionLookupError

logger = logging.getLogger(__name__)

NameLister = Callable[[str, Optional[str], str], str]


class ShellCompDirective(enum.IntFlag):
    """Hints to the shell about how to treat completion results."""

    DEFAULT = 0
    ERROR = 1
    NO_SPACE = 2
    NO_FILE_COMP = 4


class NameCompleter:
    """Prefix completion for resource names."""

    def __init__(
        self,
        lister: Optional[NameLister] = None,
        default_kind: str = "rollout",
        kinds: tuple[str, ...] = COMPLETION_KINDS,
    ):
        self.lister = lister or kubectl.list_names
        self.default_kind = default_kind
        self.kinds = kinds

    def get_resource_names(self, kind: str, prefix: str, namespace: Optional[str] = None) -> list[str]:
        """Names of resources of kind starting with prefix; [] when the lookup fails."""
        try:
            output = self.lister(kind, namespace, NAME_TEMPLATE)
        except CompletionLookupError as e:
            logger.debug("completion lookup for %s failed: %s", kind, e)
            return []
        return [res for res in output.split(" ") if res and res.startswith(prefix)]

    def complete(
        self, to_complete: str, namespace: Optional[str] = None
    ) -> tuple[list[str], ShellCompDirective]:
        """
        Candidates for to_complete and the directive for the shell.

        Without a slash, names of the default kind are completed and each
        completion kind prefixed by to_complete is offered as "<kind>/".
        When no names match, NO_SPACE is set since more typing is expected
        after the slash. With a slash, the left side selects the kind and
        names matching the right side come back as "<kind>/<name>".
        """
        directive = ShellCompDirective.NO_FILE_COMP
        kind, slash, name_prefix = to_complete.partition("/")
        if not slash:
            comps = self.get_resource_names(self.default_kind, to_complete, namespace)
            if not comps:
                directive |= ShellCompDirective.NO_SPACE
            comps.extend(f"{k}/" for k in self.kinds if k.startswith(to_complete))
            return comps, directive
        names = self.get_resource_names(kind, name_prefix, namespace)
        return [f"{kind}/{n}" for n in names], directive


class NoSpaceBashComplete(BashComplete):
    """
    Bash completion that honors NO_SPACE.

    Items created with nospace=True are sent as type "nospace"; the shell
    function adds them like plain items and switches off the trailing
    space so "rollouts/" can be continued directly.
    """

    source_template = re.sub(
        r"(\n(\s*)elif \[\[ \$type == 'plain' \]\]; then)",
        r"\n\2elif [[ $type == 'nospace' ]]; then\n\2    COMPREPLY+=($value)\n\2    compopt -o nospace\1",
        BashComplete.source_template,
        count=1,
    )

    def format_completion(self, item: CompletionItem) -> str:
        kind = "nospace" if item.nospace else item.type
        return f"{kind},{item.value}"


add_completion_class(NoSpaceBashComplete)


def rollout_name_completion(ctx, param, incomplete: str) -> list[CompletionItem]:
    """click shell_complete callback for the rollout NAME argument."""
    namespace = ctx.params.get("namespace")
    comps, directive = NameCompleter().complete(incomplete, namespace)
    nospace = bool(directive & ShellCompDirective.NO_SPACE)
    return [CompletionItem(c, nospace=nospace) for c in comps]
