"""
GoldenGate Administration Service client
"""

from .process_manager import (
    GoldenGateProcessManager,
    GoldenGateException,
    ProcessNotFoundException,
)
from .units import (
    CommandOutcome,
    CommandResult,
    CutoverResult,
    ProcessAction,
    ProcessKind,
    ReplicationUnit,
    REPOSITION_BEGIN_NOW,
    UnitState,
)

__all__ = [
    'GoldenGateProcessManager',
    'GoldenGateException',
    'ProcessNotFoundException',
    'CommandOutcome',
    'CommandResult',
    'CutoverResult',
    'ProcessAction',
    'ProcessKind',
    'ReplicationUnit',
    'REPOSITION_BEGIN_NOW',
    'UnitState',
]
