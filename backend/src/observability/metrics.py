"""Prometheus metrics for the compliance review service.

Defines operational metrics for monitoring and alerting. Counters are
incremented by the workflow services; the /metrics endpoint exposes them.
"""

from prometheus_client import Counter, Histogram

# HTTP layer
http_requests_total = Counter(
    "compliance_http_requests_total",
    "Total HTTP requests handled",
    ["method", "status_class"]  # status_class: 2xx|4xx|5xx
)

http_request_duration_seconds = Histogram(
    "compliance_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# Workflow
workflow_transitions_total = Counter(
    "compliance_workflow_transitions_total",
    "Submission/document workflow operations",
    ["action", "outcome"]  # outcome: success|rejected|conflict
)

documents_uploaded_total = Counter(
    "compliance_documents_uploaded_total",
    "Documents uploaded or resubmitted",
    ["document_type"]
)

document_reviews_total = Counter(
    "compliance_document_reviews_total",
    "Individual document review decisions",
    ["status"]  # approved|rejected
)

finalization_duration_seconds = Histogram(
    "compliance_finalization_duration_seconds",
    "Time spent finalizing a submission",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Notifications
notifications_sent_total = Counter(
    "compliance_notifications_sent_total",
    "Notification deliveries by channel",
    ["channel", "outcome"]  # channel: in_app|realtime|email, outcome: success|error|skipped
)
