"""
Cross-run concurrency control.

Runs for the same workflow and ref share a concurrency group. The newest run
registered in a group supersedes the older ones: their cancellable jobs stop
before starting. Apply and destroy jobs are never cancellable, so an apply
that has begun always runs to completion.
"""

import json
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .context import RunContext

logger = logging.getLogger(__name__)


def _run_order(run_id: str):
    # numeric CI run ids order naturally; anything else compares as text
    return (0, int(run_id), "") if run_id.isdigit() else (1, 0, run_id)


class ConcurrencyRegistry:
    """Tracks the newest run per concurrency group in a state directory."""

    def __init__(self, state_dir: str):
        self.state_dir = Path(state_dir)

    @staticmethod
    def group_for(context: RunContext) -> str:
        raw = f"{context.workflow}-{context.ref or 'local'}"
        return re.sub(r"[^A-Za-z0-9._-]+", "_", raw)

    def _group_file(self, group: str) -> Path:
        return self.state_dir / f"{group}.json"

    def latest_run(self, group: str) -> Optional[str]:
        path = self._group_file(group)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f).get("run_id")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable concurrency state {path}: {e}")
            return None

    def register(self, context: RunContext) -> None:
        """Record context's run as the newest in its group unless a newer one exists."""
        group = self.group_for(context)
        latest = self.latest_run(group)
        if latest is not None and _run_order(latest) > _run_order(context.run_id):
            logger.info(f"Run {context.run_id} registered after newer run {latest} in {group}")
            return

        self.state_dir.mkdir(parents=True, exist_ok=True)
        payload = {
            "run_id": context.run_id,
            "registered_at": datetime.now(timezone.utc).isoformat(),
        }
        fd, tmp_path = tempfile.mkstemp(dir=str(self.state_dir), suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        os.replace(tmp_path, self._group_file(group))
        logger.info(f"Run {context.run_id} is the newest in {group}")

    def is_superseded(self, context: RunContext) -> bool:
        latest = self.latest_run(self.group_for(context))
        return latest is not None and latest != context.run_id
