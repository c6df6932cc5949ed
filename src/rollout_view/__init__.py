"""
rollout_view: Render Argo Rollouts resources as a colorized tree.

Fetches a Rollout or Experiment and the ReplicaSets, Pods, AnalysisRuns
and Jobs it owns via kubectl, renders them as an aligned tree table, and
optionally redraws it in watch mode. Also provides shell completion of
resource names.
"""

__version__ = "0.1.0"
