import pytest

from plan_mcp import metrics_config


@pytest.fixture
def disabled_metrics(monkeypatch):
    """Metrics in their uninitialized state."""
    monkeypatch.setattr(metrics_config, "meter", None)
    monkeypatch.setattr(metrics_config, "tool_calls_counter", None)
    monkeypatch.setattr(metrics_config, "item_outcomes_counter", None)
    monkeypatch.setattr(metrics_config, "prometheus_reader", None)
    metrics_config._active_operations.clear()


@pytest.fixture
def enabled_metrics(monkeypatch, mocker):
    """Metrics with every OpenTelemetry instrument mocked."""
    monkeypatch.setattr(metrics_config, "meter", mocker.Mock())
    tool_calls_counter = mocker.Mock()
    item_outcomes_counter = mocker.Mock()
    monkeypatch.setattr(metrics_config, "tool_calls_counter", tool_calls_counter)
    monkeypatch.setattr(metrics_config, "item_outcomes_counter", item_outcomes_counter)
    metrics_config._active_operations.clear()
    return {"tool_calls": tool_calls_counter, "item_outcomes": item_outcomes_counter}


class TestDisabled:
    def test_start_returns_none(self, disabled_metrics):
        assert metrics_config.record_tool_call_start("plan_apply_modification", (), {}) is None
        assert not metrics_config.is_metrics_enabled()

    def test_recording_is_a_no_op(self, disabled_metrics):
        metrics_config.record_tool_call_success("t", None)
        metrics_config.record_tool_call_error("t", None, RuntimeError("x"))
        metrics_config.record_item_outcomes("t", 1, 1, 1)

    def test_summary_and_export(self, disabled_metrics):
        assert metrics_config.get_metrics_summary() == {"status": "disabled"}
        assert metrics_config.get_metrics_export() == ("# Metrics not available\n", "text/plain")

    def test_ensure_initialized_respects_test_environment(self, disabled_metrics, monkeypatch, mocker):
        init = mocker.patch.object(metrics_config, "initialize_metrics")
        monkeypatch.setattr(metrics_config, "_metrics_initialized", False)

        metrics_config.ensure_metrics_initialized()

        init.assert_not_called()


class TestEnabled:
    def test_tool_call_lifecycle(self, enabled_metrics):
        start = metrics_config.record_tool_call_start("plan_apply_modification", (), {})
        assert start is not None
        assert metrics_config.get_metrics_summary()["active_operations"] == 1

        metrics_config.record_tool_call_success("plan_apply_modification", start, 10)

        enabled_metrics["tool_calls"].add.assert_called_once()
        attributes = enabled_metrics["tool_calls"].add.call_args[0][1]
        assert attributes["status"] == "success"
        assert metrics_config.get_metrics_summary()["active_operations"] == 0

    def test_error_status(self, enabled_metrics):
        metrics_config.record_tool_call_error("t", None, RuntimeError("x"))
        assert enabled_metrics["tool_calls"].add.call_args[0][1]["status"] == "error"

    def test_item_outcomes_skip_zero_counts(self, enabled_metrics):
        metrics_config.record_item_outcomes("t", succeeded=2, failed=0, skipped=1)

        calls = enabled_metrics["item_outcomes"].add.call_args_list
        assert [(c[0][0], c[0][1]["outcome"]) for c in calls] == [(2, "success"), (1, "skipped")]


def test_shutdown_releases_the_reader(monkeypatch, mocker):
    reader = mocker.Mock()
    monkeypatch.setattr(metrics_config, "prometheus_reader", reader)

    metrics_config.shutdown_metrics()

    reader.shutdown.assert_called_once()
    assert metrics_config.prometheus_reader is None
