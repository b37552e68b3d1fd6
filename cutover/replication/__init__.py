"""
Replication module - GoldenGate fallback cutover.

- CutoverOrchestrator: sequences the Extract/Replicat activation
- CutoverState: progress markers of a run
"""

from .orchestrator import CutoverOrchestrator, CutoverState

__all__ = [
    'CutoverOrchestrator',
    'CutoverState',
]
