"""Reconciliation behaviour switches.

Every policy choice the save/export workflow makes lives on this one object so
the routers, the draft and the lifecycle all read the same answer.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class ReconciliationPolicy:
    # Every adjustment item needs a non-blank narration before it can be saved.
    require_narration: bool = True
    # A second statement for the same bank and month cannot be created.
    block_duplicates: bool = True
    # Difference observers are notified in edit mode as well as create mode.
    broadcast_while_editing: bool = True
    # PDF export refuses statements whose difference is not exactly zero.
    export_requires_reconciled: bool = False


DEFAULT_POLICY = ReconciliationPolicy()
