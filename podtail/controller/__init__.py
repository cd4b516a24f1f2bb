"""Reconciliation controller package.

Submodules
----------
controller -- Controller: event routing, session start/stop, run loop.
policy     -- should_include_container: the inclusion/exclusion rule chain.
timestamps -- resolve_start_timestamp: where a new session starts streaming.
registry   -- SessionRegistry: lock-guarded map of active sessions.
callbacks  -- Callbacks: hooks invoked on the embedding application.
"""

from podtail.controller.callbacks import Callbacks
from podtail.controller.controller import Controller
from podtail.controller.policy import should_include_container
from podtail.controller.registry import Session, SessionRegistry
from podtail.controller.timestamps import INITIAL_ADD_SKEW, StartTimestampUnresolved, resolve_start_timestamp

__all__ = [
    "INITIAL_ADD_SKEW",
    "Callbacks",
    "Controller",
    "Session",
    "SessionRegistry",
    "StartTimestampUnresolved",
    "resolve_start_timestamp",
    "should_include_container",
]
