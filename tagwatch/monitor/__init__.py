"""Registry change monitor for TagWatch.

Submodules
----------
reconciler -- AccountReconciler: per-account diff, decision and update.
driver     -- TagMonitor: poll_once() across accounts with failure isolation.
scheduler  -- PollScheduler: fixed-interval background invocation.
"""

from tagwatch.monitor.driver import TagMonitor
from tagwatch.monitor.reconciler import AccountReconciler
from tagwatch.monitor.scheduler import PollScheduler

__all__ = ["AccountReconciler", "PollScheduler", "TagMonitor"]
