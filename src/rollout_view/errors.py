"""
Exception types for rollout-view.

Fetch errors are split into transient ones (the watch loop retries on the
next tick) and fatal ones (the resource is gone or access is denied).
Completion lookup failures never reach the shell; the completer turns
them into an empty candidate list.
"""


class RolloutViewError(Exception):
    """Base class for all rollout-view errors."""


class FetchError(RolloutViewError):
    """Fetching resource state from the cluster failed."""


class TransientFetchError(FetchError):
    """Temporary failure: network blip, timeout, unparsable response."""


class FatalFetchError(FetchError):
    """The resource does not exist or cannot be read."""


class CompletionLookupError(RolloutViewError):
    """Resolving the namespace or listing names for completion failed."""


class FetchCancelled(RolloutViewError):
    """A fetch was abandoned because the caller asked to stop."""
