"""
Core sync engine.

This package contains the primary logic. The `InstallationReconciler` drives a
run from release resolution to verification, using the tree manifest parser
and the file-tree helpers to decide whether the installation matches the
release; `SyncWorker` runs it off the caller's thread.
"""

from .launch import LaunchDecision, LaunchSession, decide_launch
from .reconciler import InstallationReconciler, SyncOutcome, SyncReport, SyncState
from .tree_parser import parse_tree_file, parse_tree_manifest
from .worker import SyncWorker

__all__ = [
    "InstallationReconciler",
    "LaunchDecision",
    "LaunchSession",
    "SyncOutcome",
    "SyncReport",
    "SyncState",
    "SyncWorker",
    "decide_launch",
    "parse_tree_file",
    "parse_tree_manifest",
]
