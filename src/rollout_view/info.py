"""
Build ResourceNode trees from kubectl JSON.

Children are matched to parents through metadata.ownerReferences and
grouped by the rollout revision annotation. Status derivation stays
shallow: phases, replica counts and container readiness only.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from .config import (
    ICON_BAD,
    ICON_NEUTRAL,
    ICON_OK,
    ICON_PAUSED,
    ICON_PROGRESSING,
    ICON_UNKNOWN,
    ICON_WAITING,
    ICON_WARNING,
    PHASE_ERROR,
    PHASE_FAILED,
    PHASE_INCONCLUSIVE,
    PHASE_PENDING,
    PHASE_RUNNING,
    PHASE_SUCCESSFUL,
    TAG_ACTIVE,
    TAG_CANARY,
    TAG_PREVIEW,
    TAG_STABLE,
)
from .kubectl import kubectl_get_json
from .tree import ResourceNode, ResourceSnapshot, SummaryRow
from .watch import Fetcher

REVISION_ANNOTATION = "rollout.argoproj.io/revision"
POD_TEMPLATE_HASH_LABEL = "rollouts-pod-template-hash"
CHILD_KINDS = "replicasets,pods,jobs,analysisruns,experiments"

ROLLOUT_PHASE_ICONS = {
    "Healthy": ICON_OK,
    "Progressing": ICON_PROGRESSING,
    "Paused": ICON_PAUSED,
    "Degraded": ICON_BAD,
}

ANALYSIS_PHASE_ICONS = {
    PHASE_PENDING: ICON_WAITING,
    PHASE_RUNNING: ICON_PROGRESSING,
    PHASE_SUCCESSFUL: ICON_OK,
    PHASE_FAILED: ICON_BAD,
    PHASE_ERROR: ICON_BAD,
    PHASE_INCONCLUSIVE: ICON_WARNING,
}

POD_STATUS_ICONS = {
    "Pending": ICON_WAITING,
    "ContainerCreating": ICON_PROGRESSING,
    "PodInitializing": ICON_PROGRESSING,
    "Running": ICON_OK,
    "Completed": ICON_OK,
    "Succeeded": ICON_OK,
    "Failed": ICON_BAD,
    "Error": ICON_BAD,
    "InvalidImageName": ICON_BAD,
    "CrashLoopBackOff": ICON_BAD,
    "ImagePullBackOff": ICON_WARNING,
    "ErrImagePull": ICON_WARNING,
    "RunContainerError": ICON_WARNING,
    "Terminating": ICON_NEUTRAL,
}


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 Kubernetes timestamp such as 2024-05-01T12:00:00Z."""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def human_duration(seconds: int) -> str:
    """Short kubectl-style duration: 45s, 6m30s, 2h, 3d4h, 2y."""
    if seconds < -1:
        return "<invalid>"
    if seconds < 0:
        return "0s"
    if seconds < 60 * 2:
        return f"{seconds}s"
    minutes = seconds // 60
    if minutes < 10:
        s = seconds % 60
        return f"{minutes}m" if s == 0 else f"{minutes}m{s}s"
    if minutes < 60 * 3:
        return f"{minutes}m"
    hours = minutes // 60
    if hours < 8:
        m = minutes % 60
        return f"{hours}h" if m == 0 else f"{hours}h{m}m"
    if hours < 48:
        return f"{hours}h"
    if hours < 24 * 8:
        h = hours % 24
        return f"{hours // 24}d" if h == 0 else f"{hours // 24}d{h}h"
    if hours < 24 * 365 * 2:
        return f"{hours // 24}d"
    if hours < 24 * 365 * 8:
        dy = hours // 24 % 365
        return f"{hours // 24 // 365}y" if dy == 0 else f"{hours // 24 // 365}y{dy}d"
    return f"{hours // 24 // 365}y"


def human_age(obj: dict, now: datetime) -> str:
    created = parse_timestamp(obj.get("metadata", {}).get("creationTimestamp"))
    if created is None:
        return "<unknown>"
    return human_duration(int((now - created).total_seconds()))


def _name(obj: dict) -> str:
    return obj.get("metadata", {}).get("name", "")


def _uid(obj: dict) -> str:
    return obj.get("metadata", {}).get("uid", "")


def owned_by(obj: dict, owner: dict) -> bool:
    uid = _uid(owner)
    refs = obj.get("metadata", {}).get("ownerReferences") or []
    return bool(uid) and any(ref.get("uid") == uid for ref in refs)


def children_of(owner: dict, objects: list[dict], kind: str) -> list[dict]:
    """Objects of kind owned by owner, sorted by name."""
    found = [o for o in objects if o.get("kind") == kind and owned_by(o, owner)]
    return sorted(found, key=_name)


def revision_of(obj: dict) -> int:
    annotations = obj.get("metadata", {}).get("annotations") or {}
    try:
        return int(annotations.get(REVISION_ANNOTATION, 0))
    except ValueError:
        return 0


def pod_status(pod: dict) -> tuple[str, str, int, int, int]:
    """Return (status, icon, ready containers, total containers, restarts)."""
    status = pod.get("status", {})
    containers = pod.get("spec", {}).get("containers") or []
    statuses = status.get("containerStatuses") or []
    reason = status.get("reason") or status.get("phase") or "Unknown"
    for cs in statuses:
        state = cs.get("state") or {}
        waiting = (state.get("waiting") or {}).get("reason")
        terminated = (state.get("terminated") or {}).get("reason")
        if waiting:
            reason = waiting
        elif terminated and reason != "Running":
            reason = terminated
    if pod.get("metadata", {}).get("deletionTimestamp"):
        reason = "Terminating"
    ready = sum(1 for cs in statuses if cs.get("ready"))
    restarts = sum(int(cs.get("restartCount", 0)) for cs in statuses)
    return reason, POD_STATUS_ICONS.get(reason, ICON_UNKNOWN), ready, len(containers), restarts


def pod_node(pod: dict, now: datetime) -> ResourceNode:
    status, icon, ready, total, restarts = pod_status(pod)
    return ResourceNode(
        name=_name(pod),
        kind="Pod",
        icon=icon,
        status=status,
        age=human_age(pod, now),
        info=(f"ready:{ready}/{total}",) + ((f"restarts:{restarts}",) if restarts else ()),
    )


def replica_set_status(rs: dict) -> tuple[str, str]:
    desired = rs.get("spec", {}).get("replicas", 0) or 0
    available = rs.get("status", {}).get("availableReplicas", 0) or 0
    if desired == 0:
        return "ScaledDown", ICON_NEUTRAL
    if available >= desired:
        return "Healthy", ICON_OK
    return "Progressing", ICON_PROGRESSING


def rollout_tags(rs: dict, rollout: Optional[dict]) -> tuple[str, ...]:
    """Info tags (stable, canary, active, preview, ping, pong) for a ReplicaSet."""
    if rollout is None:
        return ()
    pod_hash = (rs.get("metadata", {}).get("labels") or {}).get(POD_TEMPLATE_HASH_LABEL)
    if not pod_hash:
        return ()
    status = rollout.get("status", {})
    strategy = rollout.get("spec", {}).get("strategy", {})
    tags = []
    if pod_hash == status.get("stableRS"):
        tags.append(TAG_STABLE)
        ping_pong = (status.get("canary") or {}).get("stablePingPong")
        if ping_pong:
            tags.append(ping_pong)
    elif "canary" in strategy and pod_hash == status.get("currentPodHash"):
        tags.append(TAG_CANARY)
    blue_green = status.get("blueGreen") or {}
    if pod_hash == blue_green.get("activeSelector"):
        tags.append(TAG_ACTIVE)
    elif pod_hash == blue_green.get("previewSelector"):
        tags.append(TAG_PREVIEW)
    return tuple(tags)


def replica_set_node(
    rs: dict, objects: list[dict], now: datetime, rollout: Optional[dict] = None
) -> ResourceNode:
    status, icon = replica_set_status(rs)
    pods = tuple(pod_node(p, now) for p in children_of(rs, objects, "Pod"))
    return ResourceNode(
        name=_name(rs),
        kind="ReplicaSet",
        icon=icon,
        status=status,
        age=human_age(rs, now),
        info=rollout_tags(rs, rollout),
        children=pods,
    )


def job_node(job: dict, now: datetime) -> ResourceNode:
    status = job.get("status", {})
    if status.get("succeeded"):
        phase = PHASE_SUCCESSFUL
    elif status.get("failed"):
        phase = PHASE_FAILED
    elif status.get("active"):
        phase = PHASE_RUNNING
    else:
        phase = PHASE_PENDING
    return ResourceNode(
        name=_name(job),
        kind="Job",
        icon=ANALYSIS_PHASE_ICONS[phase],
        status=phase,
        age=human_age(job, now),
    )


def analysis_run_node(run: dict, objects: list[dict], now: datetime) -> ResourceNode:
    phase = run.get("status", {}).get("phase") or PHASE_PENDING
    jobs = tuple(job_node(j, now) for j in children_of(run, objects, "Job"))
    return ResourceNode(
        name=_name(run),
        kind="AnalysisRun",
        icon=ANALYSIS_PHASE_ICONS.get(phase, ICON_UNKNOWN),
        status=phase,
        age=human_age(run, now),
        children=jobs,
    )


def experiment_node(experiment: dict, objects: list[dict], now: datetime) -> ResourceNode:
    phase = experiment.get("status", {}).get("phase") or PHASE_PENDING
    children = tuple(replica_set_node(rs, objects, now) for rs in children_of(experiment, objects, "ReplicaSet"))
    children += tuple(analysis_run_node(r, objects, now) for r in children_of(experiment, objects, "AnalysisRun"))
    return ResourceNode(
        name=_name(experiment),
        kind="Experiment",
        icon=ANALYSIS_PHASE_ICONS.get(phase, ICON_UNKNOWN),
        status=phase,
        age=human_age(experiment, now),
        children=children,
    )


def rollout_strategy(rollout: dict) -> str:
    strategy = rollout.get("spec", {}).get("strategy", {})
    if "canary" in strategy:
        return "Canary"
    if "blueGreen" in strategy:
        return "BlueGreen"
    return "Unknown"


def build_rollout_snapshot(rollout: dict, objects: list[dict], now: datetime) -> ResourceSnapshot:
    """
    Tree of a Rollout: one revision node per revision, newest first.

    Each revision holds its ReplicaSets (with their Pods), then
    Experiments, then AnalysisRuns (with their Jobs).
    """
    status = rollout.get("status", {})
    phase = status.get("phase") or "Unknown"
    icon = ROLLOUT_PHASE_ICONS.get(phase, ICON_UNKNOWN)

    by_revision: dict[int, list[ResourceNode]] = defaultdict(list)
    for rs in children_of(rollout, objects, "ReplicaSet"):
        by_revision[revision_of(rs)].append(replica_set_node(rs, objects, now, rollout))
    for ex in children_of(rollout, objects, "Experiment"):
        by_revision[revision_of(ex)].append(experiment_node(ex, objects, now))
    for run in children_of(rollout, objects, "AnalysisRun"):
        by_revision[revision_of(run)].append(analysis_run_node(run, objects, now))
    revisions = tuple(
        ResourceNode(name=f"revision:{rev}", kind="Revision", children=tuple(by_revision[rev]))
        for rev in sorted(by_revision, reverse=True)
    )
    root = ResourceNode(
        name=_name(rollout),
        kind="Rollout",
        icon=icon,
        status=phase,
        age=human_age(rollout, now),
        children=revisions,
    )

    spec = rollout.get("spec", {})
    strategy = rollout_strategy(rollout)
    summary = [
        SummaryRow("Name", _name(rollout)),
        SummaryRow("Namespace", rollout.get("metadata", {}).get("namespace", "")),
        SummaryRow("Status", phase, icon),
    ]
    if status.get("message"):
        summary.append(SummaryRow("Message", status["message"]))
    summary.append(SummaryRow("Strategy", strategy))
    steps = (spec.get("strategy", {}).get("canary") or {}).get("steps") or []
    if strategy == "Canary" and steps:
        summary.append(SummaryRow("  Step", f"{status.get('currentStepIndex', 0)}/{len(steps)}"))
    containers = spec.get("template", {}).get("spec", {}).get("containers") or []
    images = ", ".join(c.get("image", "") for c in containers if c.get("image"))
    if images:
        summary.append(SummaryRow("Images", images))
    summary.append(SummaryRow("Replicas", ""))
    for label, value in (
        ("Desired", spec.get("replicas", 1)),
        ("Current", status.get("replicas", 0)),
        ("Updated", status.get("updatedReplicas", 0)),
        ("Ready", status.get("readyReplicas", 0)),
        ("Available", status.get("availableReplicas", 0)),
    ):
        summary.append(SummaryRow(f"  {label}", str(value or 0)))
    return ResourceSnapshot(root=root, summary=tuple(summary))


def build_experiment_snapshot(experiment: dict, objects: list[dict], now: datetime) -> ResourceSnapshot:
    """Tree of an Experiment: its ReplicaSets (with Pods) and AnalysisRuns."""
    root = experiment_node(experiment, objects, now)
    summary = (
        SummaryRow("Name", root.name),
        SummaryRow("Namespace", experiment.get("metadata", {}).get("namespace", "")),
        SummaryRow("Status", root.status, root.icon),
    )
    message = experiment.get("status", {}).get("message")
    if message:
        summary += (SummaryRow("Message", message),)
    return ResourceSnapshot(root=root, summary=summary)


def _remaining(timeout: Optional[float], started: float) -> Optional[float]:
    if timeout is None:
        return None
    return max(timeout - (time.monotonic() - started), 0.0)


def _fetcher(kind: str, name: str, namespace: Optional[str], build) -> Fetcher:
    def fetch(timeout: Optional[float], cancel: Optional[threading.Event] = None) -> ResourceSnapshot:
        started = time.monotonic()
        parent = kubectl_get_json(kind, name=name, namespace=namespace, timeout=timeout, cancel=cancel)
        ns = parent.get("metadata", {}).get("namespace") or namespace
        listing = kubectl_get_json(
            CHILD_KINDS, namespace=ns, timeout=_remaining(timeout, started), cancel=cancel
        )
        return build(parent, listing.get("items", []), datetime.now(timezone.utc))

    return fetch


def fetch_rollout(name: str, namespace: Optional[str] = None) -> Fetcher:
    """Fetcher returning a fresh snapshot of the named Rollout on each call."""
    return _fetcher("rollouts", name, namespace, build_rollout_snapshot)


def fetch_experiment(name: str, namespace: Optional[str] = None) -> Fetcher:
    """Fetcher returning a fresh snapshot of the named Experiment on each call."""
    return _fetcher("experiments", name, namespace, build_experiment_snapshot)
