"""Example: staged multi-agent workflow for a code change."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from loguru import logger

from hivekit.agents.graph import NodeContext, SkipExecution
from hivekit.agents.logging_config import log_node_results, setup_from_settings
from hivekit.agents.swarm import SwarmBuilder
from hivekit.settings.settings import Settings


def review_input(ctx: NodeContext) -> str:
    """Give the reviewer the plan and both implementations."""
    return (
        f"Original request:\n{ctx.original_prompt}\n\n"
        f"Plan:\n{ctx.content_of('planning')}\n\n"
        f"Backend:\n{ctx.content_of('backend')}\n\n"
        f"Frontend:\n{ctx.content_of('frontend')}"
    )


def frontend_input(ctx: NodeContext):
    if "frontend" not in ctx.content.lower():
        return SkipExecution("No frontend work in the plan.")
    return ctx.content


def example_feature_pipeline():
    """
    Pipeline:
    1. planning  - architect breaks the request down
    2. backend   - backend developer implements (parallel with 3)
    3. frontend  - frontend developer implements, skipped if not needed
    4. review    - reviewer sees every earlier result
    """
    settings = Settings()
    setup_from_settings(settings)

    swarm = (
        SwarmBuilder.from_settings(settings, name="feature-pipeline")
        .agent("architect", description="Plans features", tools=["Read", "Glob", "Grep"])
        .agent(
            "backend_dev",
            description="Implements server code",
            tools=["Read", "Edit", "Write", "Bash"],
            permissions={
                "*": {"allowed_paths": ["src/**", "tests/**"], "denied_paths": ["src/secrets/**"]},
                "Bash": {"allowed_commands": ["^pytest", "^git (status|diff)"]},
            },
        )
        .agent("frontend_dev", description="Implements UI code", tools=["Read", "Edit", "Write"])
        .agent("reviewer", description="Reviews changes", tools=["Read", "Grep"])
        .node("planning", agent="architect")
        .node("backend", agent="backend_dev", depends_on=["planning"])
        .node("frontend", agent="frontend_dev", depends_on=["planning"], input=frontend_input)
        .node("review", agent="reviewer", depends_on=["backend", "frontend"], input=review_input)
        .start_node("planning")
        .build()
    )

    result = swarm.execute_sync("Add a /health endpoint and show its status in the dashboard")

    if result.success:
        logger.info(f"Review:\n{result.content}")
    else:
        logger.error(f"Workflow failed: {result.error}")

    log_node_results(result.metadata.get("node_results", {}), title="feature-pipeline")


if __name__ == "__main__":
    example_feature_pipeline()
