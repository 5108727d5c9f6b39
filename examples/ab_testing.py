"""A/B Testing Example.

This example demonstrates splitting smartlink traffic between variants:
- Giving several targets the same priority so they form one pool
- Configuring target weights for traffic distribution
- Combining a conditional split with a catch-all default
- Reading the per-variant click counts back from the statistics endpoint

Targets that match at the same priority are drawn by weight. A target
without a weight counts as 1 and a target with weight 0 is never drawn
while another variant in its pool can be.

To run this example:
    uvicorn examples.ab_testing:app --reload

Then visit:
    - http://localhost:8000/s/checkout-experiment
    - http://localhost:8000/s/landing-test?utm_source=newsletter
    - http://localhost:8000/simulate/checkout-experiment?clicks=1000
    - http://localhost:8000/report/checkout-experiment
"""

from __future__ import annotations

import asyncio
from collections import Counter

from litestar import Litestar, get

from litestar_smartlinks import (
    ClickContext,
    LinkConfig,
    MemoryStorageBackend,
    SmartlinkClient,
    SmartlinksConfig,
    SmartlinksPlugin,
    StatsQuery,
    Target,
    TargetConditions,
    UTMConditions,
    UTMParams,
)
from litestar_smartlinks.types import StatsDimension

config = SmartlinksConfig(backend="memory")


def build_experiment_links() -> list[LinkConfig]:
    """Build the experiment links used by this example."""
    # Example 1: Simple A/B test (50/50 split)
    # Both targets match every click at priority 1, so the weights decide.
    checkout = LinkConfig(
        link_id="checkout-experiment",
        name="Checkout Flow Experiment",
        default_target_id="control",
        targets=[
            Target(target_id="control", url="https://shop.example.com/checkout/v1", priority=1, weight=50),
            Target(target_id="treatment", url="https://shop.example.com/checkout/v2", priority=1, weight=50),
        ],
    )

    # Example 2: Gradual rollout
    # Only 10% of clicks reach the redesigned page.
    dashboard = LinkConfig(
        link_id="dashboard-rollout",
        name="New Dashboard Rollout",
        default_target_id="legacy",
        targets=[
            Target(target_id="legacy", url="https://app.example.com/dashboard", priority=1, weight=90),
            Target(target_id="new", url="https://app.example.com/dashboard/v2", priority=1, weight=10),
        ],
    )

    # Example 3: Conditional split
    # Newsletter readers are split three ways; everyone else gets the default.
    landing = LinkConfig(
        link_id="landing-test",
        name="Newsletter Landing Page Test",
        default_target_id="default",
        targets=[
            Target(
                target_id=f"newsletter-{variant}",
                url=f"https://example.com/landing/{variant}",
                priority=10,
                weight=weight,
                conditions=TargetConditions(utm=UTMConditions(source="newsletter")),
            )
            for variant, weight in [("short", 1), ("long", 1), ("video", 2)]
        ]
        + [Target(target_id="default", url="https://example.com/landing", priority=100)],
    )
    return [checkout, dashboard, landing]


async def setup_experiments(app: Litestar) -> None:
    """Store the experiment links on application startup."""
    client: SmartlinkClient = app.state.smartlinks
    for link in build_experiment_links():
        await client.save_link(link)

    print("A/B testing smartlinks created successfully!")


# Route Handlers


@get("/")
async def index() -> dict:
    """List available A/B testing endpoints."""
    return {
        "message": "A/B Testing Example",
        "description": "Demonstrates weighted smartlink targets for experimentation",
        "links": [link.link_id for link in build_experiment_links()],
        "endpoints": {
            "/s/{link_id}": "Follow an experiment link",
            "/simulate/{link_id}?clicks=N": "Resolve N clicks and count the variants",
            "/report/{link_id}": "Clicks per target from recorded episodes",
        },
    }


@get("/simulate/{link_id:str}")
async def simulate(
    link_id: str,
    smartlinks: SmartlinkClient,
    clicks: int = 1000,
    utm_source: str | None = None,
) -> dict:
    """Resolve many clicks and report the observed distribution.

    Args:
        link_id: The experiment link
        smartlinks: Injected smartlink client
        clicks: Number of simulated clicks
        utm_source: Campaign source applied to every click

    Returns:
        Counts and shares per target

    """
    context = ClickContext(utm=UTMParams(source=utm_source))
    counts = Counter()
    for _ in range(min(clicks, 10_000)):
        decision = await smartlinks.resolve(link_id, context)
        counts[decision.target_id] += 1

    total = sum(counts.values())
    return {
        "link_id": link_id,
        "clicks": total,
        "distribution": {
            target_id: {"count": count, "share": round(count / total, 3)} for target_id, count in counts.most_common()
        },
    }


@get("/report/{link_id:str}")
async def report(link_id: str, smartlinks: SmartlinkClient) -> dict:
    """Clicks per target, computed from recorded resolution episodes."""
    await smartlinks.flush()
    stats = await smartlinks.get_stats(StatsQuery(link_id=link_id, group_by=[StatsDimension.TARGET_ID]))
    return stats.to_dict()


app = Litestar(
    route_handlers=[index, simulate, report],
    plugins=[SmartlinksPlugin(config=config)],
    on_startup=[setup_experiments],
    debug=True,
)


async def standalone_demo() -> None:
    """Run the weighted split without a server."""
    print("\n--- Standalone A/B Testing Demo ---\n")

    async with SmartlinkClient(storage=MemoryStorageBackend(), record_episodes=False) as client:
        for link in build_experiment_links():
            await client.save_link(link)

        for link_id, context in [
            ("checkout-experiment", ClickContext()),
            ("dashboard-rollout", ClickContext()),
            ("landing-test", ClickContext(utm=UTMParams(source="newsletter"))),
        ]:
            counts = Counter()
            for _ in range(1000):
                counts[(await client.resolve(link_id, context)).target_id] += 1
            print(f"{link_id}: {dict(counts.most_common())}")


if __name__ == "__main__":
    asyncio.run(standalone_demo())
