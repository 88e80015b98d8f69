"""
Convergência do Dataflow Reconciler.

Espera parametrizada por consistência eventual do control plane.
"""

from .poller import PollPolicy, PollResult, wait_for

__all__ = ["PollPolicy", "PollResult", "wait_for"]
