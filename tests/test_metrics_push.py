"""Tests for Pushgateway metrics."""

from unittest.mock import patch

import pytest

from ghpublish.config import PublishConfig
from ghpublish.metrics_push import JOB_NAME, push_publication_metrics


@pytest.fixture
def enabled():
    return PublishConfig(pushgateway_enabled=True, pushgateway_url="gateway:9091")


def _sample(registry, name, labels):
    return registry.get_sample_value(name, labels)


def test_disabled_by_default():
    with patch("ghpublish.metrics_push.pushadd_to_gateway") as push:
        assert push_publication_metrics(PublishConfig(), "site", "success", 1.0) is False
    push.assert_not_called()


def test_pushes_counters_and_histogram(enabled):
    with patch("ghpublish.metrics_push.pushadd_to_gateway") as push:
        pushed = push_publication_metrics(
            enabled,
            "site",
            "success",
            2.5,
            objects={"blob": 3, "commit": 1, "tree": 0},
            repository="octo/site",
        )

    assert pushed is True
    args, kwargs = push.call_args
    assert args == ("gateway:9091",)
    assert kwargs["job"] == JOB_NAME
    assert kwargs["grouping_key"] == {"instance": "octo/site"}

    registry = kwargs["registry"]
    assert _sample(
        registry, "ghpublish_publications_total", {"mode": "site", "status": "success"}
    ) == 1.0
    assert _sample(
        registry, "ghpublish_objects_total", {"mode": "site", "kind": "blob"}
    ) == 3.0
    assert _sample(
        registry, "ghpublish_objects_total", {"mode": "site", "kind": "tree"}
    ) is None
    assert _sample(
        registry,
        "ghpublish_publication_duration_seconds_sum",
        {"mode": "site", "status": "success"},
    ) == 2.5


def test_unknown_labels_are_replaced(enabled):
    with patch("ghpublish.metrics_push.pushadd_to_gateway") as push:
        push_publication_metrics(enabled, "wiki", "success", 1.0)

    registry = push.call_args.kwargs["registry"]
    assert _sample(
        registry, "ghpublish_publications_total", {"mode": "unknown", "status": "success"}
    ) == 1.0


def test_push_failure_is_logged_not_raised(enabled, caplog):
    with patch(
        "ghpublish.metrics_push.pushadd_to_gateway",
        side_effect=OSError("connection refused"),
    ):
        assert push_publication_metrics(enabled, "downloads", "failed", 0.1) is False

    assert "pushgateway_push_failed" in caplog.text
