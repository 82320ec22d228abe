"""Diff engine: desired graph vs. last-applied state."""

from groundwork.diff.engine import DiffEngine, changed_keys
from groundwork.diff.models import ChangeAction, ChangeEntry, Changeset

__all__ = ["ChangeAction", "ChangeEntry", "Changeset", "DiffEngine", "changed_keys"]
