"""
Quick Start Example
===================
Minimal example of using the Resilient AI Pack.
"""

import asyncio
from resilient_ai import (
    ResilientAIClient,
    ResilienceConfig,
    RetryStrategy,
    GenerationRequest,
    AllProvidersExhaustedError,
)
from resilient_ai.providers import MockProvider, TransientProviderError, PermanentProviderError
from resilient_ai.reliability import BackoffPolicy, CircuitBreaker


async def no_wait(seconds: float):
    print(f"   (would sleep {seconds:.2f}s)")


async def main():
    """Quick start demo."""
    print("=" * 60)
    print("Resilient AI Pack - Quick Start")
    print("=" * 60)

    # 1. Building Blocks
    print("\n1. Building Blocks")
    print("-" * 40)

    backoff = BackoffPolicy(seed=7)
    print(f"   Backoff Policy:")
    print(f"   - Delays: {[round(backoff.delay(i)) for i in range(4)]} ms")
    print(f"   - Estimated wait for 3 retries: {backoff.total_time(3):.0f} ms")

    circuit = CircuitBreaker(name="demo", failure_threshold=2, timeout_seconds=30)
    circuit.record_failure()
    circuit.record_failure()
    print(f"\n   Circuit Breaker:")
    print(f"   - Name: {circuit.name}")
    print(f"   - State: {circuit.state.value}")
    print(f"   - Allows Request: {circuit.allow_request()}")

    # 2. Fallback Across Providers
    print("\n2. Fallback Across Providers")
    print("-" * 40)

    primary = MockProvider("primary", responses=[TransientProviderError("overloaded", status_code=503)] * 3)
    secondary = MockProvider("secondary", responses=[""])
    tertiary = MockProvider.echo("tertiary")

    client = ResilientAIClient(
        [primary, secondary, tertiary],
        config=ResilienceConfig(backoff_seed=7),
        sleep_func=no_wait,
    )
    result = await client.invoke_detailed(
        GenerationRequest(user_prompt="Plan a day in Lisbon"),
        strategy=RetryStrategy.RETRY_WITH_BACKOFF,
    )
    print(f"   - Answer: {result.value}")
    print(f"   - Served by: {result.provider_name} (fallback level {result.fallback_level})")
    print(f"   - Calls: primary={primary.call_count}, secondary={secondary.call_count}, "
          f"tertiary={tertiary.call_count}")

    # 3. Fast-Fail and Exhaustion
    print("\n3. Fast-Fail and Exhaustion")
    print("-" * 40)

    broken = ResilientAIClient([
        MockProvider("bad-key", default=PermanentProviderError("invalid api key", status_code=401)),
        MockProvider("busy", default=TransientProviderError("rate limited", status_code=429)),
    ])
    try:
        await broken.generate_content("Hello", strategy=RetryStrategy.FAST_FAIL)
    except AllProvidersExhaustedError as e:
        print(f"   - Attempted: {e.attempted}")
        for failure in e.failures:
            print(f"   - {failure}")

    print(f"\n   Providers:\n{client.pool.describe()}")

    print("\n" + "=" * 60)
    print("Quick Start Complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
