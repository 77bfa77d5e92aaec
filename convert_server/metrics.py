# convert_server/metrics.py
from prometheus_client import Counter, Histogram

JOBS_SUBMITTED = Counter(
    "jobs_submitted_total",
    "Conversion jobs accepted for processing",
    ["tool"],
)

JOBS_FINISHED = Counter(
    "jobs_finished_total",
    "Conversion jobs that reached a terminal state",
    ["status"],
)

QUOTA_DENIALS = Counter(
    "quota_denials_total",
    "Submissions refused by the quota ledger",
    ["reason"],
)

PROCESSING_SECONDS = Histogram(
    "job_processing_seconds",
    "Wall-clock time spent converting a job",
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)
