"""Tests for the retry executor with the report policy"""

from __future__ import annotations

import io
import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from stubborn.application.executor import constant, execute, growing, run
from stubborn.application.options import (
    build,
    with_callback,
    with_delay,
    with_jitter,
    with_label,
    with_logger,
    with_retries,
    with_sleep,
    with_time_scale,
)
from stubborn.domain.errors import InvalidRetriesCount, Unrecoverable, is_unrecoverable, unwrap
from stubborn.domain.jitter import no_jitter
from stubborn.domain.models.configuration import Strategy, TimeScale

SAMPLE_ERROR = RuntimeError("There was a problem")


class Flaky:
    """Operation failing a given number of times before succeeding"""

    def __init__(self, failures: int, result="Success"):
        self.failures = failures
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"failure #{self.calls}")
        return self.result


def always_fails():
    raise SAMPLE_ERROR


def fast(sleeps=None):
    """Options keeping tests free of real waits"""
    recorder = sleeps if sleeps is not None else []
    return [with_time_scale(TimeScale.NANOSECOND), with_sleep(recorder.append)]


class TestReportPolicy:
    """Tests for run() outcomes"""

    def test_always_failing_constant(self):
        """Test exhausting three attempts returns the sample error"""
        calls = []

        def failing():
            calls.append(1)
            raise SAMPLE_ERROR

        result, err = constant(failing, with_retries(3), *fast())

        assert result is None
        assert err is SAMPLE_ERROR
        assert len(calls) == 3

    @pytest.mark.parametrize("retries", [1, 2, 7, 100])
    def test_invocations_equal_budget(self, retries):
        """Test an always failing operation is invoked exactly max_retries times"""
        op = Flaky(failures=1000)

        result, err = run(op, with_retries(retries), *fast())

        assert result is None
        assert op.calls == retries
        assert str(err) == f"failure #{retries}"

    def test_last_error_returned(self):
        """Test the terminal error is the last failure, not the first"""
        op = Flaky(failures=10)

        _, err = run(op, with_retries(4), *fast())

        assert str(err) == "failure #4"

    @pytest.mark.parametrize("k", [1, 2, 5])
    def test_success_on_kth_attempt(self, k):
        """Test success on attempt k stops after k invocations"""
        op = Flaky(failures=k - 1)
        seen = []

        result, err = run(op, with_retries(5), with_callback(lambda cfg, r: seen.append(r)), *fast())

        assert result == "Success"
        assert err is None
        assert op.calls == k
        assert seen == ["Success"]

    def test_growing_success_on_second_attempt(self):
        """Test the growing scenario: second attempt wins and the callback fires once"""
        op = Flaky(failures=1)
        snapshots = []

        result, err = growing(
            op,
            with_retries(5),
            with_callback(lambda cfg, r: snapshots.append((cfg, r))),
            *fast(),
        )

        assert (result, err) == ("Success", None)
        assert op.calls == 2
        assert len(snapshots) == 1
        cfg, r = snapshots[0]
        assert r == "Success"
        assert cfg.invocations == 2
        assert cfg.failed_invocations == 1
        assert cfg.strategy == Strategy.GROWING

    def test_callback_not_called_on_exhaustion(self):
        """Test the callback only fires on success"""
        seen = []

        _, err = run(always_fails, with_retries(2), with_callback(lambda cfg, r: seen.append(r)), *fast())

        assert err is SAMPLE_ERROR
        assert seen == []

    def test_result_can_be_falsy(self):
        """Test a falsy result still counts as success"""
        result, err = run(lambda: 0, with_retries(3), *fast())
        assert result == 0
        assert err is None

    @pytest.mark.parametrize("retries", [0, 101])
    def test_invalid_configuration_never_invokes(self, retries):
        """Test an invalid retry count is reported before any attempt"""
        op = Flaky(failures=0)

        result, err = run(op, with_retries(retries), *fast())

        assert result is None
        assert isinstance(err, InvalidRetriesCount)
        assert op.calls == 0


class TestUnrecoverable:
    """Tests for unrecoverable failures"""

    def test_stops_after_one_invocation(self):
        """Test unrecoverable errors are never retried"""
        cause = PermissionError("token revoked")
        calls = []

        def denied():
            calls.append(1)
            raise Unrecoverable(cause)

        result, err = run(denied, with_retries(50), *fast())

        assert result is None
        assert len(calls) == 1
        assert is_unrecoverable(err)
        assert unwrap(err) is cause
        assert err.unwrap() is cause

    def test_after_recoverable_failures(self):
        """Test an unrecoverable error ends the loop mid-way"""
        calls = []

        def degrading():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset")
            raise Unrecoverable(ValueError("bad payload"))

        _, err = run(degrading, with_retries(10), *fast())

        assert len(calls) == 3
        assert isinstance(unwrap(err), ValueError)

    def test_not_counted_as_failed_invocation(self):
        """Test unrecoverable errors are not logged as retried failures"""
        stream = io.StringIO()

        def denied():
            raise Unrecoverable(PermissionError("denied"))

        run(denied, with_retries(3), with_logger(stream), *fast())

        assert "Attempt #" not in stream.getvalue()

    def test_unwrap_passthrough(self):
        """Test unwrap leaves ordinary errors alone"""
        assert unwrap(SAMPLE_ERROR) is SAMPLE_ERROR
        assert not is_unrecoverable(SAMPLE_ERROR)
        assert not is_unrecoverable(None)


class TestDelays:
    """Tests for waits between attempts"""

    def test_wait_before_first_attempt(self):
        """Test that even a first-try success is preceded by a wait"""
        sleeps = []

        result, err = run(lambda: "ok", with_delay(10), with_jitter(no_jitter), *fast(sleeps))

        assert result == "ok"
        assert sleeps == [pytest.approx(10e-9)]

    def test_constant_delays(self):
        """Test constant strategy waits the same before each attempt"""
        sleeps = []

        constant(always_fails, with_retries(3), with_delay(10), with_jitter(no_jitter), *fast(sleeps))

        assert sleeps == [pytest.approx(10e-9)] * 3

    def test_growing_delays(self):
        """Test growing strategy multiplies the delay by the attempt number"""
        sleeps = []

        growing(always_fails, with_retries(4), with_delay(10), with_jitter(no_jitter), *fast(sleeps))

        assert sleeps == [
            pytest.approx(10e-9),
            pytest.approx(20e-9),
            pytest.approx(30e-9),
            pytest.approx(40e-9),
        ]

    def test_growing_multiplies_jittered_value(self):
        """Test the attempt multiplier applies after jitter"""
        sleeps = []
        jitter_inputs = []

        def halve(cap):
            jitter_inputs.append(cap)
            return cap // 2

        growing(always_fails, with_retries(3), with_delay(100), with_jitter(halve), *fast(sleeps))

        assert jitter_inputs == [100, 100, 100]
        assert sleeps == [pytest.approx(50e-9), pytest.approx(100e-9), pytest.approx(150e-9)]

    @pytest.mark.parametrize("retries", [1, 3, 6])
    def test_jitter_called_once_per_attempt(self, retries):
        """Test an exhausted run draws one jittered delay per attempt, none after the last"""
        sleeps = []
        jitter_inputs = []

        def counting(cap):
            jitter_inputs.append(cap)
            return cap

        constant(always_fails, with_retries(retries), with_delay(10), with_jitter(counting), *fast(sleeps))

        assert len(jitter_inputs) == retries
        assert len(sleeps) == retries

    def test_time_scale_applied(self):
        """Test the delay magnitude is converted with the time scale"""
        sleeps = []

        run(
            lambda: "ok",
            with_delay(3),
            with_jitter(no_jitter),
            with_time_scale("second"),
            with_sleep(sleeps.append),
        )

        assert sleeps == [3.0]

    def test_full_jitter_bounds(self):
        """Test default jitter keeps each wait below the base delay"""
        sleeps = []

        run(always_fails, with_retries(20), with_delay(100), with_time_scale("second"), with_sleep(sleeps.append))

        assert len(sleeps) == 20
        assert all(0 <= s < 100 for s in sleeps)


class TestLogging:
    """Tests for per-attempt warnings"""

    def test_warning_per_failed_attempt(self, caplog):
        """Test each recoverable failure is logged with label and attempt number"""
        sink = logging.getLogger("tests.executor.sink")

        with caplog.at_level(logging.WARNING, logger="tests.executor.sink"):
            run(always_fails, with_retries(3), with_label("FailingFunc"), with_logger(sink), *fast())

        messages = [r.getMessage() for r in caplog.records if r.name == "tests.executor.sink"]
        assert messages == [
            "FailingFunc (Attempt #1): There was a problem",
            "FailingFunc (Attempt #2): There was a problem",
            "FailingFunc (Attempt #3): There was a problem",
        ]

    def test_default_label_in_messages(self):
        """Test the derived label prefixes warnings"""
        stream = io.StringIO()

        run(always_fails, with_retries(1), with_logger(stream), *fast())

        assert "always_fails (Attempt #1): There was a problem" in stream.getvalue()

    def test_default_sink_uses_package_logger(self, caplog):
        """Test warnings go to the stubborn logger by default"""
        with caplog.at_level(logging.WARNING, logger="stubborn"):
            run(always_fails, with_retries(2), *fast())

        assert any("(Attempt #2)" in r.getMessage() for r in caplog.records)

    def test_broken_sink_does_not_fail_run(self):
        """Test a failing sink never breaks the executor"""

        class BrokenSink:
            def warning(self, msg):
                raise OSError("disk full")

        op = Flaky(failures=2)
        result, err = run(op, with_retries(3), with_logger(BrokenSink()), *fast())

        assert (result, err) == ("Success", None)
        assert op.calls == 3


class TestExecute:
    """Tests for execute() on a prebuilt configuration"""

    def test_counters(self):
        """Test invocation counters after a run"""
        cfg, _ = build(Flaky(failures=2), with_retries(5), *fast())

        assert execute(cfg) == "Success"
        assert cfg.invocations == 3
        assert cfg.failed_invocations == 2
        assert cfg.invocations <= cfg.max_retries

    def test_raises_last_error(self):
        """Test execute raises instead of returning the error"""
        cfg, _ = build(always_fails, with_retries(2), *fast())

        with pytest.raises(RuntimeError, match="There was a problem"):
            execute(cfg)
        assert cfg.invocations == 2

    def test_raises_unrecoverable(self):
        """Test execute lets unrecoverable errors through"""

        def denied():
            raise Unrecoverable(KeyError("gone"))

        cfg, _ = build(denied, with_retries(4), *fast())

        with pytest.raises(Unrecoverable):
            execute(cfg)
        assert cfg.invocations == 1


class TestIndependentRuns:
    """Tests for runs on separate threads"""

    def test_concurrent_runs_do_not_share_state(self):
        """Test counters stay private to each run"""
        ops = [Flaky(failures=n) for n in range(4)]

        def go(op):
            return run(op, with_retries(10), *fast())

        with ThreadPoolExecutor(max_workers=4) as pool:
            outcomes = list(pool.map(go, ops))

        assert outcomes == [("Success", None)] * 4
        assert [op.calls for op in ops] == [1, 2, 3, 4]
