"""Collector package for podtail.

Supplies the controller with pod listings and a live pod event stream.

Submodules
----------
base        -- WatchSource / PodEventHandler interfaces.
convert     -- pod_snapshot_from_k8s: V1Pod to PodSnapshot.
pod_watcher -- PodWatcher: list-then-watch with back-off and relist recovery.
"""

from podtail.collector.base import PodEventHandler, WatchSource
from podtail.collector.convert import pod_snapshot_from_k8s
from podtail.collector.pod_watcher import PodWatcher

__all__ = ["PodEventHandler", "PodWatcher", "WatchSource", "pod_snapshot_from_k8s"]
