"""Tests for correlation ID generation, resolution and propagation."""

import re

import pytest

from core.correlation import (
    correlation_id_var,
    generate_correlation_id,
    get_correlation_id,
    resolve_correlation_id,
    set_correlation_id,
)


class TestGenerateCorrelationId:
    """Tests for generate_correlation_id function."""

    def test_returns_8_hex_characters(self) -> None:
        """Correlation ID should be 8 lowercase hex characters."""
        assert re.match(r"^[0-9a-f]{8}$", generate_correlation_id())

    def test_generates_unique_ids(self) -> None:
        """Each call should generate a different ID."""
        ids = {generate_correlation_id() for _ in range(500)}
        assert len(ids) == 500


class TestCorrelationIdContext:
    """Tests for correlation ID context management."""

    def test_set_and_get(self) -> None:
        set_correlation_id("abc12345")
        assert get_correlation_id() == "abc12345"

    def test_empty_when_not_set(self) -> None:
        correlation_id_var.set("")
        assert get_correlation_id() == ""


class TestResolveCorrelationId:
    """Tests for choosing the ID of an incoming request."""

    @pytest.mark.parametrize("incoming", ["abc123", "front-end_42", "A" * 64])
    def test_reuses_plain_tokens(self, incoming: str) -> None:
        assert resolve_correlation_id(incoming) == incoming

    @pytest.mark.parametrize(
        "incoming",
        [None, "", "has space", "line\nbreak", "<script>", "A" * 65, "{braces}"],
    )
    def test_replaces_missing_or_unsafe_ids(self, incoming: str | None) -> None:
        resolved = resolve_correlation_id(incoming)
        assert resolved != incoming
        assert re.match(r"^[0-9a-f]{8}$", resolved)


class TestCorrelationHeader:
    """The API echoes a correlation ID on every response."""

    def test_generated_when_absent(self, client) -> None:
        response = client.get("/api/health")
        assert re.match(r"^[0-9a-f]{8}$", response.headers["X-Correlation-ID"])

    def test_incoming_id_is_echoed(self, client) -> None:
        response = client.get("/api/health", headers={"X-Correlation-ID": "trace-77"})
        assert response.headers["X-Correlation-ID"] == "trace-77"

    def test_unsafe_incoming_id_is_replaced(self, client) -> None:
        response = client.get(
            "/api/health", headers={"X-Correlation-ID": "bad id with spaces"}
        )
        assert response.headers["X-Correlation-ID"] != "bad id with spaces"
