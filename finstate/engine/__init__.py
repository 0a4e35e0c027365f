"""Snapshot, locking and the Mutation Engine."""

from finstate.engine.locks import EntityLocks
from finstate.engine.mutation_engine import MutationEngine
from finstate.engine.snapshot import EntitySnapshot, SnapshotView

__all__ = [
    "EntityLocks",
    "EntitySnapshot",
    "MutationEngine",
    "SnapshotView",
]
