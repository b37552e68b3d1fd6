"""
Value types shared by the GoldenGate client and the cutover orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ProcessKind(Enum):
    """GoldenGate process type; the value is the REST collection name."""
    EXTRACT = 'extracts'
    REPLICAT = 'replicats'

    @property
    def title(self) -> str:
        return 'Extract' if self is ProcessKind.EXTRACT else 'Replicat'


class UnitState(Enum):
    RUNNING = 'running'
    STOPPED = 'stopped'
    UNKNOWN = 'unknown'


class ProcessAction(Enum):
    STOP = 'stop'
    REPOSITION = 'reposition'
    START = 'start'


class CommandOutcome(Enum):
    ACKNOWLEDGED = 'acknowledged'
    ALREADY_IN_STATE = 'already_in_state'
    UNEXPECTED = 'unexpected'


# ALTER ... BEGIN NOW: reposition to the current SCN
REPOSITION_BEGIN_NOW = {'begin': 'now'}


@dataclass(frozen=True)
class ReplicationUnit:
    """One managed Extract or Replicat process."""
    kind: ProcessKind
    name: str

    @property
    def endpoint(self) -> str:
        return f"/services/v2/{self.kind.value}/{self.name}"

    @property
    def label(self) -> str:
        return f"{self.kind.title} {self.name}"


@dataclass(frozen=True)
class CommandResult:
    """
    Classified response to a state-change request.

    For UNEXPECTED outcomes ``body`` holds the raw response text (empty
    when the request never reached the manager).
    """
    outcome: CommandOutcome
    body: str = ''
    http_status: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is not CommandOutcome.UNEXPECTED


@dataclass
class CutoverResult:
    extract_final: UnitState
    replicat_final: UnitState
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return (
            self.extract_final is UnitState.RUNNING
            and self.replicat_final is UnitState.RUNNING
        )
