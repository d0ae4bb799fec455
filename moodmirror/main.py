from __future__ import annotations

import asyncio

from moodmirror.app.main import lifespan


async def _print_insights() -> None:
    async with lifespan() as services:
        report = await services.insights.generate()
    print(report.model_dump_json(indent=2))


def run() -> None:
    """Generate an insights report for the configured database and print it as JSON."""

    asyncio.run(_print_insights())


if __name__ == "__main__":
    run()
