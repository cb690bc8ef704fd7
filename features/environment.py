"""
Behave environment configuration for DNS Zone Pipeline scenario tests.
"""

import logging
import shutil
import tempfile
from pathlib import Path

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def before_all(context):
    """Set up test environment before all tests."""
    context.base_dir = Path(__file__).parent.parent
    context.pr_number = 7
    logger.info("Test environment setup complete")


def before_scenario(context, scenario):
    """Give each scenario its own workspace, artifact store and state dir."""
    context.scenario_name = scenario.name
    context.temp_dir = Path(tempfile.mkdtemp(prefix="dns-pipeline-"))
    context.work_dir = context.temp_dir / "work"
    context.work_dir.mkdir()

    context.test_config = {
        "terraform": {"working_dir": str(context.work_dir), "plan_file": "tfplan"},
        "artifacts": {"name": "terraform-plan", "retention_days": 1},
        "gate": {"environment": "production", "mode": "environment"},
    }
    context.summaries = []
    context.results = []

    logger.info(f"Starting scenario: {scenario.name}")


def after_scenario(context, scenario):
    """Clean up after each test scenario."""
    shutil.rmtree(context.temp_dir, ignore_errors=True)
    logger.info(f"Completed scenario: {scenario.name}")


def after_all(context):
    logger.info("Test environment cleanup complete")
