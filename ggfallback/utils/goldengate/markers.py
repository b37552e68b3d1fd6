"""
Acknowledgment markers returned by the GoldenGate Administration Service.

The service does not signal success uniformly: each action (and each
process type) answers with its own OGG message code or wording. The
tables below list what we accept as success per (kind, action); they can
be overridden through ``GOLDENGATE_CONFIG['ACK_MARKERS']`` and
``GOLDENGATE_CONFIG['ALREADY_MARKERS']``.
"""

from typing import Dict, Iterable, Optional, Tuple

from django.conf import settings

from .units import CommandOutcome, ProcessAction, ProcessKind

MarkerTable = Dict[ProcessKind, Dict[ProcessAction, Tuple[str, ...]]]


ACK_MARKERS: MarkerTable = {
    ProcessKind.EXTRACT: {
        ProcessAction.STOP: ('OGG-15427', 'stopped'),
        ProcessAction.REPOSITION: ('OGG-08100',),
        ProcessAction.START: ('OGG-15426', 'started'),
    },
    ProcessKind.REPLICAT: {
        ProcessAction.STOP: ('OGG-15428', 'stopped'),
        ProcessAction.REPOSITION: ('OGG-08100', 'altered'),
        ProcessAction.START: ('OGG-15445', 'OGG-00975', 'started'),
    },
}

ALREADY_MARKERS: MarkerTable = {
    ProcessKind.EXTRACT: {
        ProcessAction.STOP: ('already stopped', 'not running'),
        ProcessAction.REPOSITION: (),
        ProcessAction.START: ('already running',),
    },
    ProcessKind.REPLICAT: {
        ProcessAction.STOP: ('already stopped', 'not running'),
        ProcessAction.REPOSITION: (),
        ProcessAction.START: ('already running',),
    },
}


def _apply_overrides(base: MarkerTable, overrides: Optional[Dict]) -> MarkerTable:
    """Merge a settings-style override dict ({'extract': {'start': [...]}})."""
    table = {kind: dict(actions) for kind, actions in base.items()}
    for kind_key, actions in (overrides or {}).items():
        kind = _parse_kind(kind_key)
        for action_key, markers in actions.items():
            table[kind][ProcessAction(action_key.lower())] = tuple(markers)
    return table


def _parse_kind(key: str) -> ProcessKind:
    key = key.lower()
    for kind in ProcessKind:
        if key in (kind.value, kind.value.rstrip('s')):
            return kind
    raise ValueError(f"Unknown GoldenGate process kind in marker config: {key}")


def get_marker_tables() -> Tuple[MarkerTable, MarkerTable]:
    """Return (ack_markers, already_markers) with settings overrides applied."""
    gg_config = getattr(settings, 'GOLDENGATE_CONFIG', {})
    return (
        _apply_overrides(ACK_MARKERS, gg_config.get('ACK_MARKERS')),
        _apply_overrides(ALREADY_MARKERS, gg_config.get('ALREADY_MARKERS')),
    )


def _contains_any(body: str, markers: Iterable[str]) -> bool:
    lowered = body.lower()
    return any(marker.lower() in lowered for marker in markers)


def classify_response(
    kind: ProcessKind,
    action: ProcessAction,
    body: str,
    http_ok: bool,
    ack_markers: Optional[MarkerTable] = None,
    already_markers: Optional[MarkerTable] = None,
) -> CommandOutcome:
    """
    Classify a PATCH response body for the given process kind and action.

    Already-in-state markers win over acknowledgment markers and are honoured
    for any HTTP status (the service reports e.g. "already running" as a 4xx).
    Acknowledgment markers only count on a 2xx response.
    """
    if ack_markers is None or already_markers is None:
        ack_markers, already_markers = get_marker_tables()

    body = body or ''
    if _contains_any(body, already_markers[kind][action]):
        return CommandOutcome.ALREADY_IN_STATE
    if http_ok and _contains_any(body, ack_markers[kind][action]):
        return CommandOutcome.ACKNOWLEDGED
    return CommandOutcome.UNEXPECTED
