"""
Prometheus metrics for GoldenGate cutover runs
"""
from prometheus_client import Counter, Histogram

# ====================================
# GOLDENGATE REST METRICS
# ====================================
goldengate_probes_total = Counter(
    'goldengate_probes_total',
    'Total number of process status probes',
    ['kind', 'state']  # kind: extracts/replicats, state: running/stopped/unknown
)

goldengate_commands_total = Counter(
    'goldengate_commands_total',
    'Total number of process state-change commands',
    ['kind', 'action', 'outcome']  # action: stop/reposition/start
)

goldengate_request_duration = Histogram(
    'goldengate_request_duration_seconds',
    'Time taken by Administration Service REST calls',
    ['method'],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 90.0, float("inf"))
)

# ====================================
# CUTOVER METRICS
# ====================================
cutover_runs_total = Counter(
    'cutover_runs_total',
    'Total number of fallback activation runs',
    ['result']  # result: success/failed/aborted
)

cutover_run_duration = Histogram(
    'cutover_run_duration_seconds',
    'Wall-clock duration of fallback activation runs',
    buckets=(5.0, 15.0, 30.0, 60.0, 120.0, 300.0, float("inf"))
)
