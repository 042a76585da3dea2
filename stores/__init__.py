"""Stores module containing the data collaborators of the decision maker."""

from stores.action_store import RestActionStore
from stores.base import ActionStore, BaseStore, BranchStore, LogSink, StoreError
from stores.branch_store import RestBranchStore
from stores.log_sink import RestLogSink
from stores.memory import InMemoryStore

__all__ = [
    "ActionStore",
    "BaseStore",
    "BranchStore",
    "InMemoryStore",
    "LogSink",
    "RestActionStore",
    "RestBranchStore",
    "RestLogSink",
    "StoreError",
]
