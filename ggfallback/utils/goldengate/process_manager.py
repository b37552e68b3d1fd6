"""
GoldenGate Process Manager - Observes and drives Extract/Replicat processes
via the GoldenGate Administration Service REST API (/services/v2).
"""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

import requests
import urllib3
from django.conf import settings

from cutover.metrics import (
    goldengate_commands_total,
    goldengate_probes_total,
    goldengate_request_duration,
)
from .markers import classify_response, get_marker_tables
from .units import (
    CommandOutcome,
    CommandResult,
    ProcessAction,
    ReplicationUnit,
    UnitState,
)


class GoldenGateException(Exception):
    """Base exception for GoldenGate operations"""
    pass


class ProcessNotFoundException(GoldenGateException):
    """Raised when an Extract or Replicat cannot be resolved"""

    def __init__(self, unit: ReplicationUnit):
        self.unit = unit
        super().__init__(f"{unit.label} not found.")


class GoldenGateProcessManager:
    """
    Manager class for GoldenGate Extract/Replicat lifecycle calls

    Handles:
    - Probing process status (never raises, UNKNOWN on any failure)
    - Waiting for a process to reach a status (fixed-interval poll)
    - Issuing stop / reposition / start commands and classifying the reply

    Every request and response body is written to ``self.logger`` at DEBUG,
    so pass the run log as ``logger`` to get a complete audit trail.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        logger: Optional[logging.Logger] = None,
        verify_tls: Optional[bool] = None,
        request_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        wait_timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize manager; unset options come from settings.GOLDENGATE_CONFIG"""
        gg_config = getattr(settings, 'GOLDENGATE_CONFIG', {})

        self.base_url = base_url.rstrip('/')
        self.auth = (username, password)
        self.logger = logger or logging.getLogger(__name__)
        self.verify_tls = gg_config.get('VERIFY_TLS', False) if verify_tls is None else verify_tls
        self.request_timeout = request_timeout or gg_config.get('REQUEST_TIMEOUT', 90)
        self.poll_interval = gg_config.get('POLL_INTERVAL', 2) if poll_interval is None else poll_interval
        self.wait_timeout = gg_config.get('WAIT_TIMEOUT', 30) if wait_timeout is None else wait_timeout
        self.stopped_statuses = {
            status.lower() for status in gg_config.get('STOPPED_STATUSES', ['stopped'])
        }
        self.ack_markers, self.already_markers = get_marker_tables()
        self._sleep = sleep
        self._clock = clock

        if not self.verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        self.logger.debug(f"GoldenGateProcessManager initialized with URL: {self.base_url}")

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Optional[int], str, Optional[str]]:
        """
        Make HTTP request to the Administration Service

        Args:
            method: HTTP method (GET, PATCH)
            endpoint: Path below the deployment URL
            data: JSON request body

        Returns:
            Tuple[Optional[int], str, Optional[str]]: (http_status, body, error_message);
            http_status is None when the request never completed
        """
        url = f"{self.base_url}{endpoint}"
        headers = {'Accept': 'application/json'}
        if data is not None:
            headers['Content-Type'] = 'application/json'

        kwargs = {
            'headers': headers,
            'auth': self.auth,
            'timeout': self.request_timeout,
            'verify': self.verify_tls,
        }

        started = time.monotonic()
        try:
            if method == 'GET':
                response = requests.get(url, **kwargs)
            elif method == 'PATCH':
                response = requests.patch(url, json=data, **kwargs)
            else:
                return None, '', f"Unsupported HTTP method: {method}"
        except requests.exceptions.Timeout:
            error_msg = f"Request timeout after {self.request_timeout} seconds"
            self.logger.debug(f"{method} {endpoint} -> {error_msg}")
            return None, '', error_msg
        except requests.exceptions.ConnectionError as e:
            error_msg = f"Connection error: {str(e)}"
            self.logger.debug(f"{method} {endpoint} -> {error_msg}")
            return None, '', error_msg
        except requests.exceptions.RequestException as e:
            error_msg = f"Request failed: {str(e)}"
            self.logger.debug(f"{method} {endpoint} -> {error_msg}")
            return None, '', error_msg
        finally:
            goldengate_request_duration.labels(method=method).observe(time.monotonic() - started)

        body = response.text or ''
        self.logger.debug(f"{method} {endpoint} -> HTTP {response.status_code}\n{body}\n")
        if response.status_code >= 300:
            return response.status_code, body, f"HTTP {response.status_code}"
        return response.status_code, body, None

    # ==========================================
    # Observe
    # ==========================================

    def get_process_status(self, unit: ReplicationUnit) -> UnitState:
        """
        Get the lifecycle state of an Extract or Replicat.

        Status is advisory: transport errors, non-2xx responses and bodies
        without a readable ``response.status`` all yield UNKNOWN.

        Args:
            unit: Process to probe

        Returns:
            UnitState: RUNNING, STOPPED or UNKNOWN
        """
        http_status, body, error = self._make_request('GET', unit.endpoint)
        state = UnitState.UNKNOWN

        if error is None:
            try:
                status = json.loads(body).get('response', {}).get('status', '')
            except (ValueError, AttributeError):
                status = ''
                self.logger.debug(f"{unit.label}: could not parse status response")

            status = str(status).lower()
            if status == UnitState.RUNNING.value:
                state = UnitState.RUNNING
            elif status in self.stopped_statuses:
                state = UnitState.STOPPED
            elif status:
                self.logger.debug(f"{unit.label}: unrecognized status '{status}'")
        elif http_status == 404:
            self.logger.debug(f"{unit.label} not found")

        goldengate_probes_total.labels(kind=unit.kind.value, state=state.value).inc()
        return state

    def wait_for_status(
        self,
        unit: ReplicationUnit,
        expected: UnitState,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Poll a process at a fixed interval until it reports ``expected``.

        Args:
            unit: Process to poll
            expected: Target state
            timeout: Maximum wait in seconds (default WAIT_TIMEOUT)

        Returns:
            bool: True once the state is observed, False when the timeout
            elapses first. Never raises.
        """
        timeout = self.wait_timeout if timeout is None else timeout
        deadline = self._clock() + timeout

        while True:
            if self.get_process_status(unit) is expected:
                return True

            remaining = deadline - self._clock()
            if remaining <= 0:
                self.logger.debug(
                    f"{unit.label} did not reach {expected.value} within {timeout}s"
                )
                return False
            self._sleep(min(self.poll_interval, remaining))

    # ==========================================
    # Mutate
    # ==========================================

    def issue_command(
        self,
        unit: ReplicationUnit,
        desired_state: UnitState,
        extra: Optional[Dict[str, Any]] = None,
    ) -> CommandResult:
        """
        Send a single state-change request and classify the reply.

        Args:
            unit: Process to change
            desired_state: RUNNING (start) or STOPPED (stop, or reposition
                when ``extra`` carries a ``begin`` key)
            extra: Additional request fields, e.g. REPOSITION_BEGIN_NOW

        Returns:
            CommandResult: ACKNOWLEDGED, ALREADY_IN_STATE or UNEXPECTED(body).
            Transport failures come back as UNEXPECTED with an empty body.
        """
        if desired_state is UnitState.UNKNOWN:
            raise ValueError("Cannot request the 'unknown' state")

        action = self._action_for(desired_state, extra)
        payload = {**(extra or {}), 'status': desired_state.value}

        http_status, body, error = self._make_request('PATCH', unit.endpoint, payload)

        if http_status is None:
            self.logger.warning(f"{unit.label}: {action.value} request failed: {error}")
            result = CommandResult(CommandOutcome.UNEXPECTED, '', None)
        else:
            outcome = classify_response(
                unit.kind,
                action,
                body,
                http_ok=error is None,
                ack_markers=self.ack_markers,
                already_markers=self.already_markers,
            )
            result = CommandResult(outcome, body, http_status)

        goldengate_commands_total.labels(
            kind=unit.kind.value,
            action=action.value,
            outcome=result.outcome.value,
        ).inc()
        return result

    @staticmethod
    def _action_for(desired_state: UnitState, extra: Optional[Dict[str, Any]]) -> ProcessAction:
        if desired_state is UnitState.RUNNING:
            return ProcessAction.START
        if extra and 'begin' in extra:
            return ProcessAction.REPOSITION
        return ProcessAction.STOP
