"""Push publication metrics to a Prometheus Pushgateway.

Each publication is a short-lived process, so metrics are pushed once at
the end of a run instead of being scraped. Pushing is disabled unless
``GHPUBLISH_PUSHGATEWAY_ENABLED=true``; push failures are logged and never
fail the publication.

Metric naming: ghpublish_{subject}_{unit}
"""

import logging

from prometheus_client import CollectorRegistry, Counter, Histogram, pushadd_to_gateway

from ghpublish.config import PublishConfig

logger = logging.getLogger("ghpublish.metrics")

__all__ = ["JOB_NAME", "VALID_MODES", "VALID_STATUSES", "push_publication_metrics"]

JOB_NAME = "ghpublish"

VALID_MODES = {"site", "downloads"}
VALID_STATUSES = {"success", "failed", "skipped", "dry_run"}


def _validate_label(value: str, param_name: str, allowed: set[str]) -> str:
    """Validate label value, returning "unknown" for anything unexpected."""
    if not value or value not in allowed:
        logger.warning(
            "unexpected_label_value",
            extra={"param": param_name, "value": repr(value), "allowed": sorted(allowed)},
        )
        return "unknown"
    return value


def push_publication_metrics(
    config: PublishConfig,
    mode: str,
    status: str,
    duration_seconds: float,
    objects: dict[str, int] | None = None,
    repository: str | None = None,
) -> bool:
    """Push metrics for one publication.

    Args:
        config: Configuration holding the pushgateway settings
        mode: "site" or "downloads"
        status: "success", "failed", "skipped", or "dry_run"
        duration_seconds: Wall-clock duration of the publication
        objects: Objects written per kind (e.g. {"blob": 12, "commit": 1})
        repository: owner/name used as the grouping key instance

    Returns:
        True if metrics were pushed, False if disabled or the push failed
    """
    if not config.pushgateway_enabled:
        return False

    mode = _validate_label(mode, "mode", VALID_MODES)
    status = _validate_label(status, "status", VALID_STATUSES)

    registry = CollectorRegistry()

    publications = Counter(
        "ghpublish_publications_total",
        "Publications by mode and outcome",
        ["mode", "status"],
        registry=registry,
    )
    duration = Histogram(
        "ghpublish_publication_duration_seconds",
        "Publication wall-clock duration",
        ["mode", "status"],
        registry=registry,
        buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0),
    )
    objects_total = Counter(
        "ghpublish_objects_total",
        "Objects written to GitHub by kind",
        ["mode", "kind"],
        registry=registry,
    )

    publications.labels(mode=mode, status=status).inc()
    duration.labels(mode=mode, status=status).observe(duration_seconds)
    for kind, count in (objects or {}).items():
        if count:
            objects_total.labels(mode=mode, kind=kind).inc(count)

    try:
        pushadd_to_gateway(
            config.pushgateway_url,
            job=JOB_NAME,
            registry=registry,
            grouping_key={"instance": repository or "unknown"},
            timeout=2.0,
        )
    except Exception as e:
        logger.warning(
            "pushgateway_push_failed",
            extra={
                "mode": mode,
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        return False
    return True
