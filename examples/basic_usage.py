"""Basic Smartlink Usage Example.

This example demonstrates the fundamental usage of litestar-smartlinks:
- Setting up a Litestar application with the SmartlinksPlugin
- Creating a campaign link with conditional targets
- Redirecting clicks through the built-in ``/s/{link_id}`` endpoint
- Resolving links manually with the injected SmartlinkClient

To run this example:
    uvicorn examples.basic_usage:app --reload

Then visit:
    - http://localhost:8000/s/spring-promo
    - http://localhost:8000/s/spring-promo?utm_source=email&utm_campaign=spring_2026
    - http://localhost:8000/preview/spring-promo?country=DE
    - http://localhost:8000/api/smartlinks
"""

from __future__ import annotations

import asyncio

from litestar import Litestar, get
from litestar.exceptions import NotFoundException

from litestar_smartlinks import (
    ClickContext,
    LinkConfig,
    LinkNotFoundError,
    MemoryStorageBackend,
    SmartlinkClient,
    SmartlinksConfig,
    SmartlinksPlugin,
    Target,
    TargetConditions,
    UTMConditions,
    UTMParams,
)

# Create the plugin configuration with memory backend (suitable for development)
config = SmartlinksConfig(backend="memory")


def build_campaign_link() -> LinkConfig:
    """Build the example campaign link.

    German mobile visitors from TikTok get a dedicated landing page, email
    subscribers get the spring offer, other German visitors get the German
    site and everyone else lands on the home page.
    """
    return LinkConfig(
        link_id="spring-promo",
        name="Spring campaign",
        default_target_id="home",
        targets=[
            Target(
                target_id="tiktok-de",
                url="https://example.com/de/tiktok",
                label="German TikTok mobile",
                priority=10,
                conditions=TargetConditions(country="DE", device="mobile", utm=UTMConditions(source="tiktok")),
            ),
            Target(
                target_id="email",
                url="https://example.com/spring-offer",
                label="Spring newsletter",
                priority=20,
                conditions=TargetConditions(utm=UTMConditions(source="email", campaign="spring_2026")),
            ),
            Target(
                target_id="de",
                url="https://example.com/de",
                label="German site",
                priority=30,
                conditions=TargetConditions(country=["DE", "AT", "CH"]),
            ),
            Target(target_id="home", url="https://example.com/", label="Home", priority=100),
        ],
    )


async def setup_sample_links(app: Litestar) -> None:
    """Store the sample link on application startup."""
    client: SmartlinkClient = app.state.smartlinks
    await client.save_link(build_campaign_link())
    print("Sample smartlinks created successfully!")


# Route Handlers


@get("/")
async def index() -> dict:
    """Root endpoint with basic information."""
    return {
        "message": "Litestar Smartlinks Example",
        "endpoints": {
            "/s/{link_id}": "Follow a smartlink",
            "/preview/{link_id}": "Show where a smartlink would redirect",
            "/api/smartlinks": "Manage smartlinks",
        },
    }


@get("/preview/{link_id:str}")
async def preview(
    link_id: str,
    smartlinks: SmartlinkClient,
    country: str | None = None,
    device: str | None = None,
) -> dict:
    """Resolve a link without redirecting.

    Args:
        link_id: The link to resolve
        smartlinks: Injected smartlink client
        country: Simulated visitor country
        device: Simulated visitor device

    Returns:
        The resolution decision

    """
    try:
        decision = await smartlinks.resolve(link_id, ClickContext(country=country, device=device))
    except LinkNotFoundError as exc:
        raise NotFoundException(detail=str(exc)) from exc
    return decision.to_dict()


@get("/health")
async def health_check(smartlinks: SmartlinkClient) -> dict:
    """Health check endpoint including the smartlink storage status."""
    healthy = await smartlinks.health_check()

    return {
        "status": "healthy" if healthy else "degraded",
        "components": {"smartlinks": "healthy" if healthy else "unhealthy"},
    }


# Create the Litestar application with the plugin
app = Litestar(
    route_handlers=[index, preview, health_check],
    plugins=[SmartlinksPlugin(config=config)],
    on_startup=[setup_sample_links],
    debug=True,
)


# Standalone demonstration (runs without Litestar server)
async def standalone_demo() -> None:
    """Demonstrate using the SmartlinkClient directly without Litestar.

    This is useful for:
    - Background jobs
    - CLI applications
    - Testing
    """
    print("\n--- Standalone Smartlinks Demo ---\n")

    async with SmartlinkClient(storage=MemoryStorageBackend()) as client:
        await client.save_link(build_campaign_link())

        for context in [
            ClickContext(country="DE", device="mobile", utm=UTMParams(source="tiktok")),
            ClickContext(country="AT", device="desktop"),
            ClickContext(country="FR"),
        ]:
            decision = await client.resolve("spring-promo", context)
            print(f"{context.country:>2} {context.device or '-':<8} -> {decision.resolved_url} ({decision.reason})")

        try:
            await client.resolve("unknown")
        except LinkNotFoundError as exc:
            print(f"Unknown link: {exc}")

        await client.flush()
        episodes = await client.get_episodes("spring-promo")
        print(f"Recorded {len(episodes)} episodes")


if __name__ == "__main__":
    asyncio.run(standalone_demo())
