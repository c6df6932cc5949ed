"""
Kubectl invocation helpers.

All cluster access goes through subprocess kubectl calls. Failures are
classified here: missing or forbidden resources are fatal, anything else
is transient and worth retrying on the next watch tick.
"""

from __future__ import annotations

import json
import logging
import subprocess
import threading
import time
from typing import Optional

from .config import KUBECTL_TIMEOUT
from .errors import CompletionLookupError, FatalFetchError, FetchCancelled, TransientFetchError

logger = logging.getLogger(__name__)

KUBECTL_BIN = "kubectl"

# Seconds between cancellation checks while kubectl runs.
CANCEL_POLL_INTERVAL = 0.1

# Substrings of kubectl stderr that mean retrying will not help.
FATAL_MARKERS = ("NotFound", "not found", "Forbidden", "forbidden", "Unauthorized")


def run_kubectl(
    args: list[str],
    capture: bool = True,
    timeout: Optional[float] = KUBECTL_TIMEOUT,
    cancel: Optional[threading.Event] = None,
) -> subprocess.CompletedProcess:
    """
    Run kubectl with the given args.

    Args:
        args: List of arguments (e.g. ["get", "rollouts", "-n", "app", "-o", "json"]).
        capture: If True, capture stdout/stderr; otherwise inherit from process.
        timeout: Seconds before the call is killed; None waits indefinitely.
        cancel: When set while kubectl runs, the child is killed.

    Returns:
        CompletedProcess with returncode, stdout, stderr.

    Raises:
        FetchCancelled: cancel was set before kubectl finished.
        subprocess.TimeoutExpired: the call outlived timeout.
        OSError: kubectl could not be executed.
    """
    cmd = [KUBECTL_BIN] + args
    logger.debug("running %s (timeout=%s)", " ".join(cmd), timeout)
    pipe = subprocess.PIPE if capture else None
    deadline = None if timeout is None else time.monotonic() + timeout
    with subprocess.Popen(cmd, stdout=pipe, stderr=pipe, text=True) as proc:
        try:
            while True:
                poll = CANCEL_POLL_INTERVAL
                if deadline is not None:
                    poll = min(poll, max(deadline - time.monotonic(), 0.0))
                try:
                    stdout, stderr = proc.communicate(timeout=poll)
                    break
                except subprocess.TimeoutExpired:
                    if cancel is not None and cancel.is_set():
                        raise FetchCancelled(f"{' '.join(cmd)} cancelled")
                    if deadline is not None and time.monotonic() >= deadline:
                        raise subprocess.TimeoutExpired(cmd, timeout)
        except BaseException:
            proc.kill()
            proc.wait()
            raise
    return subprocess.CompletedProcess(cmd, proc.returncode, stdout, stderr)


def classify_failure(result: subprocess.CompletedProcess) -> Exception:
    """Map a failed kubectl call to a fatal or transient fetch error."""
    message = (result.stderr or "").strip() or f"kubectl exited with status {result.returncode}"
    if any(marker in message for marker in FATAL_MARKERS):
        return FatalFetchError(message)
    return TransientFetchError(message)


def kubectl_get_json(
    kind: str,
    name: Optional[str] = None,
    namespace: Optional[str] = None,
    timeout: Optional[float] = KUBECTL_TIMEOUT,
    cancel: Optional[threading.Event] = None,
) -> dict:
    """
    Get one or more resources as JSON.

    Args:
        kind: Resource kind or comma-separated kinds, e.g. "rollouts" or
            "replicasets,pods".
        name: Optional specific resource name.
        namespace: Optional namespace; the context default is used otherwise.
        timeout: Seconds allowed for the kubectl call.
        cancel: Event that aborts the call when set.

    Returns:
        Parsed JSON dict (List-style with "items" or single object).

    Raises:
        FatalFetchError: the resource does not exist or access is denied.
        TransientFetchError: timeout, missing kubectl, failed call or invalid JSON.
        FetchCancelled: cancel was set while kubectl ran.
    """
    args = ["get", kind, "-o", "json"]
    if namespace:
        args.extend(["-n", namespace])
    if name:
        args.append(name)
    try:
        result = run_kubectl(args, timeout=timeout, cancel=cancel)
    except subprocess.TimeoutExpired as e:
        raise TransientFetchError(f"kubectl get {kind} timed out after {e.timeout}s") from e
    except OSError as e:
        raise TransientFetchError(f"could not run kubectl: {e}") from e
    except UnicodeDecodeError as e:
        raise TransientFetchError(f"undecodable output from kubectl get {kind}: {e}") from e
    if result.returncode != 0:
        raise classify_failure(result)
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise TransientFetchError(f"invalid JSON from kubectl get {kind}: {e}") from e


def current_namespace() -> str:
    """
    Namespace of the active kube context, "default" when the context sets none.

    Raises:
        CompletionLookupError: kubeconfig could not be read.
    """
    try:
        result = run_kubectl(["config", "view", "--minify", "-o", "jsonpath={..namespace}"])
    except (subprocess.TimeoutExpired, OSError, UnicodeDecodeError) as e:
        raise CompletionLookupError(str(e)) from e
    if result.returncode != 0:
        raise CompletionLookupError((result.stderr or "").strip())
    return result.stdout.strip() or "default"


def list_names(kind: str, namespace: Optional[str], template: str) -> str:
    """
    Render the names of all resources of kind through a go-template.

    Args:
        kind: Resource kind to list.
        namespace: Namespace to list in; the context namespace when None.
        template: Go template applied to the List object.

    Returns:
        The template output, e.g. "guestbook canary-demo ".

    Raises:
        CompletionLookupError: namespace resolution or the listing failed.
    """
    ns = namespace or current_namespace()
    args = ["get", kind, "-n", ns, "-o", f"go-template={template}"]
    try:
        result = run_kubectl(args)
    except (subprocess.TimeoutExpired, OSError, UnicodeDecodeError) as e:
        raise CompletionLookupError(str(e)) from e
    if result.returncode != 0:
        raise CompletionLookupError((result.stderr or "").strip())
    return result.stdout
