"""Tests for connection ID logging context."""

import asyncio
import logging

import pytest

from middleware.correlation import (
    ConnectionIdFilter,
    configure_logging,
    connection_id_context,
    get_connection_id,
    new_connection_id,
    reset_connection_id,
    set_connection_id,
)


class TestConnectionIdContext:
    """Tests for connection ID context functions."""

    def test_get_returns_none_when_not_set(self):
        assert get_connection_id() is None

    def test_set_and_reset(self):
        token = set_connection_id("abc")
        try:
            assert get_connection_id() == "abc"
        finally:
            reset_connection_id(token)
        assert get_connection_id() is None

    def test_context_manager_generates_id(self):
        with connection_id_context() as cid:
            assert len(cid) == 12
            assert get_connection_id() == cid
        assert get_connection_id() is None

    def test_context_manager_uses_provided_id(self):
        with connection_id_context("socket-1") as cid:
            assert cid == "socket-1"

    def test_ids_are_unique(self):
        assert new_connection_id() != new_connection_id()

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        """Each socket handler task sees its own id."""
        async def handler(cid):
            with connection_id_context(cid):
                await asyncio.sleep(0)
                return get_connection_id()

        results = await asyncio.gather(handler("a"), handler("b"))

        assert results == ["a", "b"]


class TestConnectionIdFilter:
    """Tests for the logging filter."""

    def _record(self):
        return logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)

    def test_adds_placeholder_without_context(self):
        record = self._record()

        assert ConnectionIdFilter().filter(record) is True
        assert record.connection_id == "-"

    def test_adds_bound_id(self):
        record = self._record()
        with connection_id_context("socket-9"):
            ConnectionIdFilter().filter(record)

        assert record.connection_id == "socket-9"


class TestConfigureLogging:
    """Tests for root logger configuration."""

    def test_installs_filtered_handler(self):
        root = logging.getLogger()
        previous_level = root.level
        handler = configure_logging(level="DEBUG")
        try:
            assert handler in root.handlers
            assert any(isinstance(f, ConnectionIdFilter) for f in handler.filters)
            assert root.level == logging.DEBUG
        finally:
            root.removeHandler(handler)
            root.setLevel(previous_level)
