"""Example: lead agent delegating to specialists."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import asyncio

from loguru import logger

from hivekit.agents.logging_config import setup_rich_logging
from hivekit.agents.agent import OpenAIClient
from hivekit.agents.swarm import SwarmBuilder


def print_event(event):
    if event["type"] in ("delegation_start", "context_limit_warning"):
        logger.info(f"[EVENT] {event}")


async def main():
    setup_rich_logging(level="INFO")

    client = OpenAIClient.create(
        api_base="http://localhost:11434/v1",
        model="gemma3:27b",
    )

    swarm = (
        SwarmBuilder("dev-team")
        .client(client)
        .concurrency(global_limit=8, local_limit=2)
        .agent(
            "lead",
            description="Coordinates the team",
            delegates_to=["backend", "tester"],
            context_window=32000,
        )
        .agent("backend", description="Writes Python services", tools=["Read", "Write", "Edit"])
        .agent(
            "tester",
            description="Runs the test suite",
            tools=["Bash"],
            permissions={"Bash": {"allowed_commands": ["^pytest"], "denied_commands": ["rm "]}},
        )
        .lead("lead")
        .build()
    )

    result = await swarm.execute("Add input validation to the signup handler", timeout=600, on_event=print_event)

    logger.info(f"Success: {result.success}")
    logger.info(f"Metrics: {result.metadata['metrics']}")
    logger.info(result.content or result.error)


if __name__ == "__main__":
    asyncio.run(main())
