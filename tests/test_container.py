"""Tests for container wiring."""

import asyncio

from nutrition_engine.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.engine.recipe_service is container.recipe_service
    assert [resolver.source_name for resolver in container.orchestrator.resolvers] == [
        "verified_store",
        "usda_fdc",
        "open_food_facts",
        "ai_estimate",
    ]
    assert container.orchestrator.timeout_seconds == settings.resolver_timeout_seconds
    asyncio.run(container.close_resources())
