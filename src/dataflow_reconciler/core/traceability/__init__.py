"""
Rastreabilidade do Dataflow Reconciler.

O Step Log registra, em memória, eventos e estado de cada Step de uma
reconciliação.
"""

from .step_log import (
    StepLog,
    add_event,
    create_step_log,
    step_failed,
    step_finished,
    step_skipped,
    step_started,
)

__all__ = [
    "StepLog",
    "add_event",
    "create_step_log",
    "step_failed",
    "step_finished",
    "step_skipped",
    "step_started",
]
