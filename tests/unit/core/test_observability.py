"""Unit tests for src/core/observability.py module."""

import pytest
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from pytest_mock import MockerFixture

from src.core.config import Settings
from src.core.observability import (
    LoguruSpanExporter,
    get_span_exporter,
    instrument_app,
    setup_tracing,
    trace_operation,
)


def make_settings(monkeypatch: pytest.MonkeyPatch, **env: str) -> Settings:
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    return Settings()


@pytest.mark.unit
class TestGetSpanExporter:
    """Test exporter selection."""

    def test_console_uses_loguru(self, monkeypatch: pytest.MonkeyPatch) -> None:
        settings = make_settings(
            monkeypatch, OBSERVABILITY_CONFIG__EXPORTER_TYPE="console"
        )

        assert isinstance(get_span_exporter(settings), LoguruSpanExporter)

    def test_otlp(self, monkeypatch: pytest.MonkeyPatch) -> None:
        settings = make_settings(
            monkeypatch,
            OBSERVABILITY_CONFIG__EXPORTER_TYPE="otlp",
            OBSERVABILITY_CONFIG__EXPORTER_ENDPOINT="http://collector:4317",
        )

        assert isinstance(get_span_exporter(settings), OTLPSpanExporter)

    def test_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        settings = make_settings(monkeypatch, OBSERVABILITY_CONFIG__EXPORTER_TYPE="none")

        assert get_span_exporter(settings) is None


@pytest.mark.unit
class TestTracingSetup:
    """Test that disabled tracing leaves OpenTelemetry untouched."""

    def test_setup_tracing_disabled(
        self, monkeypatch: pytest.MonkeyPatch, mocker: MockerFixture
    ) -> None:
        # Arrange
        settings = make_settings(
            monkeypatch, OBSERVABILITY_CONFIG__ENABLE_TRACING="false"
        )
        set_provider = mocker.patch(
            "src.core.observability.trace.set_tracer_provider"
        )

        # Act
        setup_tracing(settings)

        # Assert
        set_provider.assert_not_called()

    def test_setup_tracing_enabled(
        self, monkeypatch: pytest.MonkeyPatch, mocker: MockerFixture
    ) -> None:
        # Arrange
        settings = make_settings(
            monkeypatch,
            OBSERVABILITY_CONFIG__ENABLE_TRACING="true",
            OBSERVABILITY_CONFIG__EXPORTER_TYPE="none",
        )
        set_provider = mocker.patch(
            "src.core.observability.trace.set_tracer_provider"
        )

        # Act
        setup_tracing(settings)

        # Assert
        set_provider.assert_called_once()

    def test_instrument_app_disabled(
        self, monkeypatch: pytest.MonkeyPatch, mocker: MockerFixture
    ) -> None:
        settings = make_settings(
            monkeypatch, OBSERVABILITY_CONFIG__ENABLE_TRACING="false"
        )
        instrumentor = mocker.patch("src.core.observability.FastAPIInstrumentor")

        instrument_app(mocker.Mock(), settings)

        instrumentor.instrument_app.assert_not_called()


@pytest.mark.unit
class TestTraceOperation:
    """Test the custom span helper."""

    def test_yields_span(self) -> None:
        with trace_operation("mail.send", smtp_port=587) as span:
            assert span is not None
