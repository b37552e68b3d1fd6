"""
Cutover Orchestrator - Activates GoldenGate fallback replication.

Re-positions the Extract and the Replicat to the current SCN and starts
them, strictly in that order:
- Verify both processes exist (the only fatal check)
- Quiesce, reposition and start the Extract
- Let the Extract settle so the trail exists before the Replicat reads it
- Quiesce, reposition and start the Replicat
- Verify both are RUNNING

Every step is idempotent; re-running the whole activation is the recovery
path for a partial run.
"""

import json
import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from django.conf import settings

from cutover.metrics import cutover_run_duration, cutover_runs_total
from ggfallback.utils.goldengate import (
    CommandOutcome,
    CommandResult,
    CutoverResult,
    GoldenGateProcessManager,
    ProcessKind,
    ProcessNotFoundException,
    REPOSITION_BEGIN_NOW,
    ReplicationUnit,
    UnitState,
)


class CutoverState(Enum):
    INIT = 'init'
    EXTRACT_VERIFIED = 'extract_verified'
    EXTRACT_REPOSITIONED = 'extract_repositioned'
    EXTRACT_STARTED = 'extract_started'
    REPLICAT_VERIFIED = 'replicat_verified'
    REPLICAT_REPOSITIONED = 'replicat_repositioned'
    REPLICAT_STARTED = 'replicat_started'
    VERIFIED = 'verified'


_REPOSITIONED = {
    ProcessKind.EXTRACT: CutoverState.EXTRACT_REPOSITIONED,
    ProcessKind.REPLICAT: CutoverState.REPLICAT_REPOSITIONED,
}
_STARTED = {
    ProcessKind.EXTRACT: CutoverState.EXTRACT_STARTED,
    ProcessKind.REPLICAT: CutoverState.REPLICAT_STARTED,
}


class CutoverOrchestrator:
    """
    Sequences stop / reposition / start calls for one Extract/Replicat pair.

    Only an unresolvable process at the existence check aborts the run
    (ProcessNotFoundException). Unrecognized acknowledgments are logged as
    warnings and the run continues; the final verdict is decided solely by
    the closing status check.
    """

    def __init__(
        self,
        manager: GoldenGateProcessManager,
        extract: ReplicationUnit,
        replicat: ReplicationUnit,
        logger: Optional[logging.Logger] = None,
        settle_delay: Optional[float] = None,
        wait_timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            manager: Process manager bound to the deployment
            extract: The Extract to activate
            replicat: The Replicat to activate
            logger: Run log sink (defaults to the module logger)
            settle_delay: Fixed delay after stop/start, in seconds
            wait_timeout: Bound for status confirmation polls, in seconds
            sleep: Blocking sleep function
        """
        gg_config = getattr(settings, 'GOLDENGATE_CONFIG', {})

        self.manager = manager
        self.extract = extract
        self.replicat = replicat
        self.logger = logger or logging.getLogger(__name__)
        self.settle_delay = gg_config.get('SETTLE_DELAY', 5) if settle_delay is None else settle_delay
        self.wait_timeout = wait_timeout
        self._sleep = sleep

        self.state = CutoverState.INIT
        self.history: List[CutoverState] = [CutoverState.INIT]
        self.warnings: List[str] = []

    # ==========================================
    # Main Operation
    # ==========================================

    def run(self) -> CutoverResult:
        """
        Run the full activation sequence.

        Returns:
            CutoverResult with both final states; ``success`` iff both RUNNING

        Raises:
            ProcessNotFoundException: if either process cannot be resolved
        """
        started = time.monotonic()
        try:
            result = self._run()
        except ProcessNotFoundException:
            cutover_runs_total.labels(result='aborted').inc()
            raise
        cutover_run_duration.observe(time.monotonic() - started)
        cutover_runs_total.labels(result='success' if result.success else 'failed').inc()
        return result

    def _run(self) -> CutoverResult:
        # STEP 1: both processes must be addressable before anything is mutated
        self.logger.info(f"[1/6] Verifying {self.extract.label} exists...")
        extract_state = self._verify_exists(self.extract)
        self.logger.info(f"[2/6] Verifying {self.replicat.label} exists...")
        replicat_state = self._verify_exists(self.replicat)
        self._advance(CutoverState.EXTRACT_VERIFIED)

        # STEPS 2-4: Extract
        self.logger.info("")
        self.logger.info(
            f"[3/6] Re-positioning {self.extract.label} to current SCN (BEGIN NOW)..."
        )
        if self._quiesce(self.extract, extract_state):
            self._reposition(self.extract)
        self.logger.info(f"[4/6] Starting {self.extract.label}...")
        self._start(self.extract)

        # STEP 5: the trail must exist before the Replicat is repositioned against it
        self.logger.info(f"  Waiting for {self.extract.kind.title} to stabilize...")
        self._sleep(self.settle_delay)
        if not self.manager.wait_for_status(self.extract, UnitState.RUNNING, self.wait_timeout):
            self._warn(f"{self.extract.label} not confirmed RUNNING; continuing with {self.replicat.label}.")
        self._advance(CutoverState.REPLICAT_VERIFIED)

        # STEP 6: Replicat
        self.logger.info(
            f"[5/6] Re-positioning {self.replicat.label} to current SCN (BEGIN NOW)..."
        )
        if self._quiesce(self.replicat, replicat_state):
            self._reposition(self.replicat)
        self.logger.info(f"[6/6] Starting {self.replicat.label}...")
        self._start(self.replicat)

        # STEP 7: single final check, no retry
        return self._verify_final()

    # ==========================================
    # Steps
    # ==========================================

    def _verify_exists(self, unit: ReplicationUnit) -> UnitState:
        state = self.manager.get_process_status(unit)
        if state is UnitState.UNKNOWN:
            self.logger.error(f"ERROR: {unit.label} not found.")
            raise ProcessNotFoundException(unit)
        self.logger.info(f"  Current status: {state.value}")
        return state

    def _quiesce(self, unit: ReplicationUnit, observed: UnitState) -> bool:
        """
        Stop a running process before repositioning it.

        The stop acknowledgment is asynchronous and not reliably pollable
        within a short window, so a fixed settle delay always follows the
        stop. Polling is only used when the stop was not acknowledged; if the
        poll still sees the process up, one more stop is sent.

        Returns:
            bool: True when the process may be repositioned
        """
        if observed is not UnitState.RUNNING:
            self.logger.debug(f"  {unit.label} is {observed.value}; no stop needed.")
            return True

        self.logger.info(f"  {unit.kind.title} is running. Stopping first...")
        result = self.manager.issue_command(unit, UnitState.STOPPED)
        self._sleep(self.settle_delay)

        if result.ok:
            return True
        self._log_unexpected(unit, 'stop', result)
        if self.manager.wait_for_status(unit, UnitState.STOPPED, self.wait_timeout):
            return True

        self._warn(f"{unit.label} not confirmed STOPPED; retrying stop.")
        retry = self.manager.issue_command(unit, UnitState.STOPPED)
        self._sleep(self.settle_delay)
        if not retry.ok:
            self._log_unexpected(unit, 'stop', retry)

        state = self.manager.get_process_status(unit)
        if state is not UnitState.STOPPED:
            self._warn(f"{unit.label} still {state.value}; reposition skipped.")
            return False
        return True

    def _reposition(self, unit: ReplicationUnit):
        result = self.manager.issue_command(unit, UnitState.STOPPED, REPOSITION_BEGIN_NOW)
        if result.ok:
            self.logger.info(f"  OK: {unit.kind.title} re-positioned to current SCN.")
        else:
            # TODO: make this fatal once ack markers are confirmed for every GG release
            self._log_unexpected(unit, 'reposition', result)
        self._advance(_REPOSITIONED[unit.kind])

    def _start(self, unit: ReplicationUnit):
        if self.manager.get_process_status(unit) is UnitState.RUNNING:
            self.logger.info(f"  {unit.kind.title} already running; start skipped.")
            self._advance(_STARTED[unit.kind])
            return

        result = self.manager.issue_command(unit, UnitState.RUNNING)
        if result.outcome is CommandOutcome.ALREADY_IN_STATE:
            self.logger.info(f"  OK: {unit.kind.title} already running.")
        elif result.ok:
            self.logger.info(f"  OK: {unit.kind.title} started.")
        else:
            self._log_unexpected(unit, 'start', result)
        self._advance(_STARTED[unit.kind])

    def _verify_final(self) -> CutoverResult:
        self.logger.info("")
        self.logger.info("=== Final Status Check ===")
        self._sleep(self.settle_delay)

        extract_final = self.manager.get_process_status(self.extract)
        replicat_final = self.manager.get_process_status(self.replicat)

        self.logger.info(f"Extract  {self.extract.name}:  {extract_final.value}")
        self.logger.info(f"Replicat {self.replicat.name}: {replicat_final.value}")
        self._advance(CutoverState.VERIFIED)

        return CutoverResult(
            extract_final=extract_final,
            replicat_final=replicat_final,
            warnings=list(self.warnings),
        )

    # ==========================================
    # Internal Helpers
    # ==========================================

    def _advance(self, state: CutoverState):
        self.logger.debug(f"State: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _warn(self, message: str):
        self.warnings.append(message)
        self.logger.warning(f"  WARNING: {message}")

    def _log_unexpected(self, unit: ReplicationUnit, action: str, result: CommandResult):
        self._warn(f"Unexpected response to {action} of {unit.label}. Check log.")
        body = result.body or "<no response body>"
        try:
            body = json.dumps(json.loads(body), indent=2)
        except ValueError:
            pass
        self.logger.debug(f"  {action} response (HTTP {result.http_status}):\n{body}")
