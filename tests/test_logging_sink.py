"""Tests for logging sinks"""

import io
import logging

import pytest

from stubborn.infrastructure.logging_sink import as_sink, default_sink, emit_warning


class TestAsSink:
    """Tests for as_sink"""

    def test_logger_passthrough(self):
        """Test loggers and adapters are used directly"""
        log = logging.getLogger("tests.sink.passthrough")
        adapter = logging.LoggerAdapter(log, {})
        assert as_sink(log) is log
        assert as_sink(adapter) is adapter

    def test_stream_wrapped(self):
        """Test streams receive formatted warning lines"""
        stream = io.StringIO()

        sink = as_sink(stream)
        sink.warning("job (Attempt #1): boom")

        assert stream.getvalue() == "WARNING job (Attempt #1): boom\n"

    def test_streams_are_isolated(self):
        """Test two stream sinks never write to each other"""
        first, second = io.StringIO(), io.StringIO()

        as_sink(first).warning("one")
        as_sink(second).warning("two")

        assert "two" not in first.getvalue()
        assert "one" not in second.getvalue()

    def test_stream_sink_not_registered(self):
        """Test stream sinks stay out of the logging manager"""
        sink = as_sink(io.StringIO())
        assert sink.name not in logging.Logger.manager.loggerDict

    def test_unsupported(self):
        """Test other objects are rejected"""
        with pytest.raises(TypeError, match="Unsupported"):
            as_sink(object())


class TestEmitWarning:
    """Tests for emit_warning"""

    def test_emits(self, caplog):
        """Test messages reach the default sink"""
        with caplog.at_level(logging.WARNING, logger="stubborn"):
            emit_warning(default_sink(), "label (Attempt #2): nope")
        assert "label (Attempt #2): nope" in caplog.text

    def test_swallows_sink_errors(self):
        """Test a failing sink does not raise"""

        class Broken:
            def warning(self, msg):
                raise ValueError("closed file")

        emit_warning(Broken(), "ignored")
