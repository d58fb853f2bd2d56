"""
Resilient AI Pack - Main Entry Point
====================================
Generation and diagnostics service around a ResilientAIClient.

Runs with mock providers by default (RESILIENT_AI_MOCK_PROVIDERS) so the
fallback, retry and circuit-breaker behaviour can be exercised end to end.
"""

import logging
import os
from typing import Optional, List

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
import uvicorn

from resilient_ai import __version__
from resilient_ai.config import ResilienceConfig
from resilient_ai.client import ResilientAIClient, GenerationRequest
from resilient_ai.providers import (
    MockProvider,
    AllProvidersExhaustedError,
    NoProvidersConfiguredError,
)
from resilient_ai.reliability import (
    HealthChecker,
    ProviderHealthCheck,
    CustomHealthCheck,
)

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

class Config:
    """Application configuration."""

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8080"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info").lower()

    # Providers
    MOCK_PROVIDERS: str = os.getenv("RESILIENT_AI_MOCK_PROVIDERS", "primary,secondary,tertiary")

    @classmethod
    def mock_provider_names(cls) -> List[str]:
        return [name.strip() for name in cls.MOCK_PROVIDERS.split(",") if name.strip()]


config = Config()


# =============================================================================
# Initialize Components
# =============================================================================

def build_default_client(resilience: Optional[ResilienceConfig] = None) -> ResilientAIClient:
    """Client over echoing mock providers named in RESILIENT_AI_MOCK_PROVIDERS."""
    providers = [MockProvider.echo(name) for name in config.mock_provider_names()]
    return ResilientAIClient(providers, config=resilience or ResilienceConfig.from_env())


def build_health_checker(client: ResilientAIClient) -> HealthChecker:
    checker = HealthChecker(version=__version__)
    for entry in client.pool:
        checker.add_component(ProviderHealthCheck(entry.adapter, entry.breaker))
    checker.add_component(CustomHealthCheck(
        name="client_ready",
        check_func=lambda: {
            "status": "healthy" if client.is_available() else "unhealthy",
            "available_providers": client.available_provider_count(),
        },
    ))
    return checker


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(
    client: Optional[ResilientAIClient] = None,
    health_checker: Optional[HealthChecker] = None,
) -> FastAPI:
    """
    Build the service around a client.

    Example:
        app = create_app(ResilientAIClient([primary, secondary]))
    """
    if client is None:
        client = build_default_client()
    if health_checker is None:
        health_checker = build_health_checker(client)

    app = FastAPI(
        title="Resilient AI Pack",
        description="Multi-provider AI generation with retries, fallback and circuit breakers",
        version=__version__,
    )
    app.state.client = client
    app.state.health_checker = health_checker

    # Include health check routes
    app.include_router(health_checker.create_fastapi_routes())

    @app.on_event("startup")
    async def mark_started():
        health_checker.mark_startup_complete()

    async def run_generation(request: Request, structured: bool):
        body = await request.json()
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Request body must be a JSON object")
        user_prompt = body.get("user_prompt", "")
        if not isinstance(user_prompt, str) or not user_prompt.strip():
            raise HTTPException(status_code=400, detail="user_prompt is required")

        generation = GenerationRequest(
            user_prompt=user_prompt,
            system_prompt=body.get("system_prompt"),
            json_schema=body.get("json_schema"),
            structured=structured,
        )

        try:
            result = await client.invoke_detailed(generation, body.get("strategy"))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except (AllProvidersExhaustedError, NoProvidersConfiguredError) as e:
            logger.error(f"Generation failed: {e.summary}")
            return JSONResponse(
                status_code=503,
                content={
                    "error": "AI providers are unavailable, please try again later",
                    "details": e.to_dict(),
                },
            )

        if result.used_fallback:
            logger.warning(
                f"Served by fallback provider {result.provider_name} (level {result.fallback_level})"
            )
        return result.to_dict()

    @app.post("/generate")
    async def generate(request: Request):
        """Generate free-form text."""
        return await run_generation(request, structured=False)

    @app.post("/generate/structured")
    async def generate_structured(request: Request):
        """Generate text conforming to a JSON schema."""
        return await run_generation(request, structured=True)

    @app.get("/providers")
    async def providers():
        """Provider availability and circuit state."""
        return {
            "description": client.describe_self(),
            "available": client.is_available(),
            "available_count": client.available_provider_count(),
            "default_strategy": client.default_strategy.value,
            "providers": client.provider_statuses(),
        }

    @app.post("/providers/{name}/reset")
    async def reset_provider(name: str):
        """Reset one provider's circuit breaker."""
        if not client.reset_breaker(name):
            raise HTTPException(status_code=404, detail=f"Unknown provider: {name}")
        logger.info(f"Circuit for provider {name} reset via API")
        return {"provider": name, "circuit_state": client.breaker(name).state.value}

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Resilient AI Pack",
            "version": __version__,
            "status": "running",
            "endpoints": {
                "generate": "/generate",
                "generate_structured": "/generate/structured",
                "providers": "/providers",
                "health": "/health",
                "ready": "/ready",
            },
        }

    return app


app = create_app()


# =============================================================================
# Run
# =============================================================================

def main():
    """Run the application."""
    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
