"""
Unit tests for the Debouncer.
"""

import asyncio

import pytest

from coalesce.debounce import DebouncedHandle, Debouncer, create_debounced
from shared.errors import ConfigurationError, DebounceAbandonedError
from shared.logging import wrapper_var


class Counter:
    """Records every call it receives."""

    def __init__(self):
        self.calls = []

    def increment(self, amount=1):
        self.calls.append(amount)
        return len(self.calls) * 100 + amount


class TestDebouncer:
    """Test cases for Debouncer."""

    @pytest.fixture
    def counter(self):
        return Counter()

    @pytest.mark.asyncio
    async def test_burst_executes_only_last_call(self, counter):
        """Calls within one window collapse into the last call."""
        debouncer = Debouncer(counter.increment, 50)

        first = debouncer.invoke(1)
        second = debouncer.invoke(2)
        third = debouncer.invoke(3)

        assert await third == 103
        assert counter.calls == [3]
        assert not first.done()
        assert not second.done()

    @pytest.mark.asyncio
    async def test_staggered_calls_fire_after_last_delay(self, counter):
        """Calls at t=0, 30, 60 with a 100ms delay run once near t=160."""
        loop = asyncio.get_running_loop()
        fired_at = []

        def increment(amount):
            fired_at.append(loop.time())
            return counter.increment(amount)

        debouncer = Debouncer(increment, 100)
        start = loop.time()

        debouncer.invoke(1)
        await asyncio.sleep(0.03)
        debouncer.invoke(2)
        await asyncio.sleep(0.03)
        last = debouncer.invoke(3)

        await last

        assert counter.calls == [3]
        assert len(fired_at) == 1
        elapsed = fired_at[0] - start
        assert 0.15 <= elapsed < 0.5

    @pytest.mark.asyncio
    async def test_cancel_prevents_execution(self, counter):
        """Cancelling before the delay means the function never runs."""
        debouncer = Debouncer(counter.increment, 20)

        future = debouncer.invoke(5)
        assert debouncer.pending is True

        assert debouncer.cancel() is True
        assert debouncer.pending is False

        await asyncio.sleep(0.06)

        assert counter.calls == []
        assert not future.done()
        assert debouncer.cancel() is False

    @pytest.mark.asyncio
    async def test_abandoned_future_times_out_for_caller(self, counter):
        """A superseded future never settles; callers guard with wait_for."""
        debouncer = Debouncer(counter.increment, 10)

        abandoned = debouncer.invoke(1)
        winner = debouncer.invoke(2)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(abandoned, timeout=0.05)
        assert await winner == 102

    @pytest.mark.asyncio
    async def test_error_reaches_only_triggering_future(self):
        """Errors reject the triggering future and leave the debouncer usable."""
        results = iter([ValueError("boom"), "ok"])

        def flaky():
            outcome = next(results)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        debouncer = Debouncer(flaky, 10)

        with pytest.raises(ValueError, match="boom"):
            await debouncer.invoke()

        assert debouncer.pending is False
        assert await debouncer.invoke() == "ok"

    @pytest.mark.asyncio
    async def test_coroutine_result_is_relayed(self):
        """Awaitable results resolve the caller's future."""
        async def fetch(query):
            await asyncio.sleep(0)
            return f"results for {query}"

        debouncer = Debouncer(fetch, 10)

        assert await debouncer.invoke("brent") == "results for brent"

    @pytest.mark.asyncio
    async def test_coroutine_error_is_relayed(self):
        """Errors raised while awaiting reject the caller's future."""
        async def fetch():
            await asyncio.sleep(0)
            raise LookupError("missing")

        debouncer = Debouncer(fetch, 10)

        with pytest.raises(LookupError, match="missing"):
            await debouncer.invoke()

    @pytest.mark.asyncio
    async def test_reject_abandoned_fails_superseded_future(self, counter):
        """Strict debouncers reject superseded futures."""
        debouncer = Debouncer(counter.increment, 10, reject_abandoned=True)

        first = debouncer.invoke(1)
        second = debouncer.invoke(2)

        with pytest.raises(DebounceAbandonedError) as exc_info:
            await first
        assert exc_info.value.reason == "superseded"
        assert exc_info.value.code == "DEBOUNCE_ABANDONED"
        assert await second == 102

    @pytest.mark.asyncio
    async def test_reject_abandoned_fails_cancelled_future(self, counter):
        """Strict debouncers reject cancelled futures."""
        debouncer = Debouncer(counter.increment, 10, reject_abandoned=True)

        future = debouncer.invoke(1)
        debouncer.cancel()

        with pytest.raises(DebounceAbandonedError) as exc_info:
            await future
        assert exc_info.value.reason == "cancelled"
        assert counter.calls == []

    @pytest.mark.asyncio
    async def test_flush_runs_pending_call_now(self, counter):
        """Flushing executes the waiting call without waiting for the delay."""
        debouncer = Debouncer(counter.increment, 10_000)

        debouncer.invoke(7)
        future = debouncer.flush()

        assert future is not None
        assert future.done()
        assert await future == 107
        assert debouncer.pending is False
        assert debouncer.flush() is None

    @pytest.mark.asyncio
    async def test_instances_are_independent(self):
        """Two debouncers over the same function do not supersede each other."""
        counter = Counter()
        left = Debouncer(counter.increment, 10)
        right = Debouncer(counter.increment, 10)

        left_future = left.invoke(1)
        right_future = right.invoke(2)

        await asyncio.gather(left_future, right_future)

        assert sorted(counter.calls) == [1, 2]

    @pytest.mark.asyncio
    async def test_keyword_arguments_are_forwarded(self, counter):
        """Keyword arguments of the last call reach the function."""
        debouncer = Debouncer(counter.increment, 10)

        assert await debouncer(amount=4) == 104

    @pytest.mark.asyncio
    async def test_wrapper_context_is_bound_during_execution(self):
        """The executing function sees the debouncer name in logging context."""
        seen = []
        debouncer = Debouncer(lambda: seen.append(wrapper_var.get()), 10, name="search-box")

        await debouncer.invoke()

        assert seen == ["search-box"]
        assert wrapper_var.get() is None

    @pytest.mark.asyncio
    async def test_metrics_are_recorded(self, counter, metrics):
        """Scheduling, superseding and execution are counted."""
        debouncer = Debouncer(counter.increment, 10, name="search", metrics=metrics)

        debouncer.invoke(1)
        await debouncer.invoke(2)

        registry = metrics.registry
        labels = {"debouncer": "search"}
        assert registry.get_sample_value("debounce_events_total", {**labels, "event": "scheduled"}) == 2
        assert registry.get_sample_value("debounce_events_total", {**labels, "event": "superseded"}) == 1
        assert registry.get_sample_value("debounce_events_total", {**labels, "event": "executed"}) == 1

    def test_invoke_requires_running_loop(self, counter):
        """Invoking outside an event loop is an error."""
        debouncer = Debouncer(counter.increment, 10)

        with pytest.raises(RuntimeError):
            debouncer.invoke(1)

    def test_negative_delay_rejected(self, counter):
        """Delays must not be negative."""
        with pytest.raises(ConfigurationError) as exc_info:
            Debouncer(counter.increment, -1)

        assert exc_info.value.code == "CONFIGURATION_ERROR"
        assert exc_info.value.details["errors"][0]["loc"] == ["delay_ms"]

    def test_non_callable_rejected(self):
        """Only callables can be debounced."""
        with pytest.raises(ConfigurationError):
            Debouncer("not a function", 10)


class TestCreateDebounced:
    """Test cases for the create_debounced factory."""

    @pytest.mark.asyncio
    async def test_handle_unpacks_to_invoke_and_cancel(self):
        """The handle works as a pair and by attribute."""
        counter = Counter()
        handle = create_debounced(counter.increment, 10)
        invoke, cancel = handle

        assert isinstance(handle, DebouncedHandle)
        assert handle.invoke == invoke
        assert await invoke(9) == 109
        assert cancel() is False

    @pytest.mark.asyncio
    async def test_each_call_builds_a_new_debouncer(self):
        """Handles from separate factory calls share nothing."""
        counter = Counter()
        first = create_debounced(counter.increment, 10)
        second = create_debounced(counter.increment, 10)

        pending = first.invoke(1)
        second.invoke(2)
        second.cancel()

        assert await pending == 101
        assert counter.calls == [1]
