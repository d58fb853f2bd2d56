"""
Tests for resilient client
==========================
"""

import asyncio
import logging

import pytest
import requests
from resilient_ai.client import ResilientAIClient, GenerationRequest, ProviderPool
from resilient_ai.providers import (
    MockProvider,
    FunctionProvider,
    StaticProvider,
    ClassifiedError,
    InvalidResponse,
    TransientProviderError,
    PermanentProviderError,
    AllProvidersExhaustedError,
    NoProvidersConfiguredError,
)
from resilient_ai.reliability import CircuitState, RetryStrategy


def transient(code: int = 503) -> TransientProviderError:
    return TransientProviderError("upstream overloaded", status_code=code)


@pytest.mark.asyncio
class TestFallback:
    """Provider walk and fallback behaviour."""

    async def test_first_provider_wins(self, make_client, echo_providers, sample_prompt):
        client = make_client(echo_providers)

        text = await client.generate_content(sample_prompt, strategy=RetryStrategy.FAST_FAIL)

        assert text == f"[primary] {sample_prompt}"
        assert [p.call_count for p in echo_providers] == [1, 0, 0]

    async def test_transient_retries_then_open_circuit_then_success(self, make_client, sleeper):
        a = MockProvider("a", default=transient())
        b = MockProvider.echo("b")
        c = MockProvider.echo("c")
        client = make_client([a, b, c])

        # Open b's circuit before the call
        for _ in range(5):
            client.breaker("b").record_failure()
        assert client.breaker("b").state == CircuitState.OPEN

        result = await client.invoke_detailed(
            GenerationRequest(user_prompt="hello"), RetryStrategy.RETRY_WITH_BACKOFF,
        )

        assert result.value == "[c] hello"
        assert result.provider_name == "c"
        assert result.provider_index == 2
        assert result.fallback_level == 1
        assert (a.call_count, b.call_count, c.call_count) == (3, 0, 1)
        assert len(result.failures) == 1
        assert result.failures[0].provider == "a"
        assert len(sleeper.calls) == 2

    async def test_all_empty_responses(self, make_client):
        providers = [MockProvider(name, default="") for name in ("a", "b", "c")]
        client = make_client(providers)

        with pytest.raises(AllProvidersExhaustedError) as exc_info:
            await client.generate_content("hello", strategy=RetryStrategy.RETRY_WITH_BACKOFF)

        error = exc_info.value
        assert error.attempted == 3
        assert all(isinstance(f, InvalidResponse) for f in error.failures)
        assert error.classified_errors == []
        assert [f.provider for f in error.failures] == ["a", "b", "c"]
        # Empty responses are never retried
        assert [p.call_count for p in providers] == [1, 1, 1]

    async def test_no_providers(self, make_client):
        client = make_client([])

        with pytest.raises(NoProvidersConfiguredError) as exc_info:
            await client.generate_content("hello")

        assert exc_info.value.configured == 0
        assert "No AI providers configured" in str(exc_info.value)

    async def test_no_available_providers(self, make_client):
        client = make_client([
            MockProvider.echo("a", available=False),
            MockProvider.echo("b", available=False),
        ])

        with pytest.raises(NoProvidersConfiguredError) as exc_info:
            await client.generate_content("hello")

        assert exc_info.value.configured == 2
        assert exc_info.value.available == 0
        assert "check configuration" in exc_info.value.summary

    async def test_all_circuits_open(self, make_client):
        a = MockProvider.echo("a")
        client = make_client([a])
        for _ in range(5):
            client.breaker("a").record_failure()

        with pytest.raises(NoProvidersConfiguredError) as exc_info:
            await client.generate_content("hello")

        assert exc_info.value.circuit_open == 1
        assert a.call_count == 0

    async def test_unavailable_provider_skipped(self, make_client):
        a = MockProvider.echo("a", available=False)
        b = MockProvider.echo("b")
        client = make_client([a, b])

        result = await client.invoke_detailed(GenerationRequest(user_prompt="x"), "fast_fail")

        assert result.provider_name == "b"
        assert result.failures == []
        assert result.fallback_level == 0
        assert a.call_count == 0

    async def test_availability_checked_per_call(self, make_client):
        a = MockProvider.echo("a")
        b = MockProvider.echo("b")
        client = make_client([a, b])

        assert await client.generate_content("1") == "[a] 1"
        a.set_available(False)
        assert await client.generate_content("2") == "[b] 2"
        a.set_available(True)
        assert await client.generate_content("3") == "[a] 3"

    @pytest.mark.parametrize("strategy", list(RetryStrategy))
    async def test_permanent_provider_attempted_once(self, make_client, strategy):
        a = MockProvider("a", default=PermanentProviderError("invalid api key", status_code=401))
        b = MockProvider.echo("b")
        client = make_client([a, b])

        assert await client.generate_content("x", strategy=strategy) == "[b] x"
        assert a.call_count == 1

    async def test_transient_under_fast_fail(self, make_client, sleeper):
        a = MockProvider("a", default=transient(429))
        b = MockProvider("b", default=transient(500))
        client = make_client([a, b])

        with pytest.raises(AllProvidersExhaustedError) as exc_info:
            await client.generate_content("x", strategy=RetryStrategy.FAST_FAIL)

        assert (a.call_count, b.call_count) == (1, 1)
        assert sleeper.calls == []
        assert [f.status_code for f in exc_info.value.classified_errors] == [429, 500]

    async def test_mixed_failures_aggregate_in_order(self, make_client):
        client = make_client([
            MockProvider("a", default=PermanentProviderError("forbidden", status_code=403)),
            MockProvider("b", default=""),
            MockProvider("c", default=transient()),
        ])

        with pytest.raises(AllProvidersExhaustedError) as exc_info:
            await client.generate_content("x", strategy="retry_with_backoff")

        failures = exc_info.value.failures
        assert [f.provider for f in failures] == ["a", "b", "c"]
        assert isinstance(failures[0], ClassifiedError) and failures[0].is_permanent
        assert isinstance(failures[1], InvalidResponse)
        assert failures[2].is_transient
        assert exc_info.value.to_dict()["attempted"] == 3

    async def test_unknown_strategy_rejected_before_any_attempt(self, make_client, echo_providers):
        client = make_client(echo_providers)

        with pytest.raises(ValueError):
            await client.generate_content("x", strategy="sometimes")

        assert all(p.call_count == 0 for p in echo_providers)

    async def test_default_strategy_from_config(self, make_client):
        a = MockProvider("a", default=transient())
        b = MockProvider.echo("b")
        client = make_client([a, b], default_strategy="fast_fail")

        assert await client.generate_content("x") == "[b] x"
        assert a.call_count == 1


@pytest.mark.asyncio
class TestCircuitIntegration:
    """Breakers as seen through the client."""

    async def test_successful_calls_keep_breaker_closed(self, make_client, echo_providers):
        client = make_client(echo_providers)

        await client.generate_content("one")
        await client.generate_content("two")

        breaker = client.breaker("primary")
        assert breaker.state == CircuitState.CLOSED
        assert breaker.consecutive_failures == 0

    async def test_repeated_failures_open_circuit_and_skip(self, make_client):
        a = MockProvider("a", default=transient())
        b = MockProvider.echo("b")
        client = make_client([a, b])

        # 3 attempts + 2 attempts (circuit opens on the 5th failure)
        await client.generate_content("1", strategy=RetryStrategy.RETRY_WITH_BACKOFF)
        await client.generate_content("2", strategy=RetryStrategy.RETRY_WITH_BACKOFF)
        assert client.breaker("a").state == CircuitState.OPEN
        assert a.call_count == 5

        await client.generate_content("3", strategy=RetryStrategy.RETRY_WITH_BACKOFF)
        assert a.call_count == 5

    async def test_half_open_probe_recovers_provider(self, make_client, clock):
        a = MockProvider("a", responses=[transient()] * 5, default="recovered")
        b = MockProvider.echo("b")
        client = make_client([a, b])

        for _ in range(5):
            await client.generate_content("x", strategy=RetryStrategy.FAST_FAIL)
        assert client.breaker("a").state == CircuitState.OPEN

        clock.advance(61)
        assert await client.generate_content("x", strategy=RetryStrategy.FAST_FAIL) == "recovered"
        assert client.breaker("a").state == CircuitState.CLOSED

    async def test_concurrent_calls_single_probe(self, make_client, clock):
        gate = asyncio.Event()

        async def slow_recovery(user_prompt, system_prompt=None):
            await gate.wait()
            return "probe ok"

        a = FunctionProvider("a", slow_recovery)
        b = StaticProvider("b", "fallback")
        client = make_client([a, b], failure_threshold=1)
        client.breaker("a").record_failure()
        clock.advance(61)

        first = asyncio.ensure_future(client.generate_content("x", strategy="fast_fail"))
        await asyncio.sleep(0)
        second = await client.generate_content("y", strategy="fast_fail")
        gate.set()

        assert second == "fallback"
        assert await first == "probe ok"
        assert client.breaker("a").state == CircuitState.CLOSED

    async def test_cancelled_probe_releases_slot(self, make_client, clock):
        never = asyncio.Event()
        calls = []

        async def hangs_then_recovers(user_prompt, system_prompt=None):
            calls.append(user_prompt)
            if len(calls) == 1:
                await never.wait()
            return "recovered"

        a = FunctionProvider("a", hangs_then_recovers)
        client = make_client([a], failure_threshold=1)
        client.breaker("a").record_failure()
        clock.advance(61)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(client.generate_content("x", strategy="fast_fail"), 0.05)

        assert client.breaker("a").state == CircuitState.HALF_OPEN
        assert await client.generate_content("y", strategy="fast_fail") == "recovered"
        assert client.breaker("a").state == CircuitState.CLOSED
        assert calls == ["x", "y"]

    async def test_reset_breaker(self, make_client):
        client = make_client([MockProvider.echo("a")], failure_threshold=1)
        client.breaker("a").record_failure()

        assert client.reset_breaker("a") is True
        assert client.breaker("a").state == CircuitState.CLOSED
        assert client.reset_breaker("missing") is False


@pytest.mark.asyncio
class TestStructuredAndAdapters:
    """Structured generation and adapter variants."""

    async def test_structured_content_passes_schema(self, make_client, sample_schema):
        a = MockProvider("a", default='{"days": []}')
        client = make_client([a])

        text = await client.generate_structured_content("plan", sample_schema, system_prompt="be brief")

        assert text == '{"days": []}'
        call = a.calls[0]
        assert call.operation == "generate_structured_content"
        assert call.json_schema == sample_schema
        assert call.system_prompt == "be brief"

    async def test_sync_function_provider_and_http_errors(self, make_client):
        def rate_limited(user_prompt, system_prompt=None):
            response = requests.Response()
            response.status_code = 429
            raise requests.HTTPError("429 Too Many Requests", response=response)

        def working(user_prompt, system_prompt=None):
            return f"sync: {user_prompt}"

        client = make_client([
            FunctionProvider("limited", rate_limited),
            FunctionProvider("working", working, model="small"),
        ])

        result = await client.invoke_detailed(GenerationRequest(user_prompt="x"), "fast_fail")

        assert result.value == "sync: x"
        assert result.failures[0].status_code == 429
        assert result.failures[0].is_transient

    async def test_function_provider_structured_fallback_appends_schema(self, make_client):
        prompts = []

        async def capture(user_prompt, system_prompt=None):
            prompts.append(user_prompt)
            return "{}"

        client = make_client([FunctionProvider("a", capture)])
        await client.generate_structured_content("plan", '{"type": "object"}')

        assert '{"type": "object"}' in prompts[0]

    async def test_nested_client_as_provider(self, make_client):
        inner = make_client([MockProvider("x", default=""), MockProvider.echo("y")])
        outer = make_client([MockProvider("z", default=transient()), inner])

        assert await outer.generate_content("hi", strategy="fast_fail") == "[y] hi"


class TestDiagnostics:
    """Describe-self and pool bookkeeping."""

    def test_describe_self(self, make_client, echo_providers):
        client = make_client(echo_providers)
        description = client.describe_self()
        assert description.startswith("ResilientAIClient [")
        assert "primary" in description and "tertiary" in description

    def test_describe_self_without_providers(self, make_client):
        assert make_client([]).describe_self() == "ResilientAIClient (no providers)"

    def test_is_available(self, make_client):
        a = MockProvider.echo("a", available=False)
        client = make_client([a])
        assert client.is_available() is False
        a.set_available(True)
        assert client.is_available() is True

    def test_provider_statuses(self, make_client, echo_providers):
        client = make_client(echo_providers)
        statuses = client.provider_statuses()
        assert [s["name"] for s in statuses] == ["primary", "secondary", "tertiary"]
        assert all(s["circuit_state"] == "closed" for s in statuses)

    def test_duplicate_provider_names_rejected(self, make_client):
        with pytest.raises(ValueError, match="Duplicate"):
            make_client([MockProvider.echo("a"), MockProvider.echo("a")])

    def test_pool_eligible_and_describe(self, clock):
        pool = ProviderPool([MockProvider.echo("a"), MockProvider.echo("b", available=False)])
        assert [e.name for e in pool.eligible()] == ["a"]
        assert "unavailable" in pool.describe()
        assert len(pool) == 2
        assert pool.get("b").index == 1

    def test_pool_logs_no_redundancy(self, caplog):
        with caplog.at_level(logging.WARNING):
            ProviderPool([MockProvider.echo("only")])
        assert "no redundancy" in caplog.text

    def test_pool_logs_no_available_providers(self, caplog):
        with caplog.at_level(logging.ERROR):
            ProviderPool([MockProvider.echo("a", available=False)])
        assert "No AI providers available" in caplog.text
