"""
Local artifact store.

Hands the plan file from the plan job to the apply job. Each artifact lives
in its own directory under the store root with a metadata file recording
when it was uploaded, how long it is retained and whether an apply already
consumed it, along with the commit and pull request the plan was made for.
Absence, expiry, prior consumption and a plan made for some other change all
read as "no artifact".
"""

import json
import logging
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

from .base_provider import ArtifactStore

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocalArtifactStore(ArtifactStore):
    """Filesystem-backed artifact store with retention."""

    def __init__(self, root: str, clock: Callable[[], datetime] = _utcnow):
        self.root = Path(root)
        self.clock = clock

    def _artifact_dir(self, name: str) -> Path:
        return self.root / name

    def _read_metadata(self, name: str) -> Optional[Dict]:
        path = self._artifact_dir(name) / METADATA_FILE
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable metadata for artifact '{name}': {e}")
            return None

    def _write_metadata(self, name: str, metadata: Dict) -> None:
        path = self._artifact_dir(name) / METADATA_FILE
        with open(path, "w", encoding="utf-8") as f:
            json.dump(metadata, f, indent=2)

    def upload(
        self,
        name: str,
        path: Path,
        retention_days: int,
        run_id: str = "",
        commit: str = "",
        pr_number: Optional[int] = None,
    ) -> None:
        path = Path(path)
        artifact_dir = self._artifact_dir(name)
        if artifact_dir.exists():
            shutil.rmtree(artifact_dir)
        artifact_dir.mkdir(parents=True)

        shutil.copyfile(path, artifact_dir / path.name)
        self._write_metadata(
            name,
            {
                "name": name,
                "filename": path.name,
                "run_id": run_id,
                "commit": commit,
                "pr_number": pr_number,
                "uploaded_at": self.clock().isoformat(),
                "retention_days": retention_days,
                "consumed": False,
            },
        )
        logger.info(f"Uploaded artifact '{name}' ({path.name}), retained {retention_days} day(s)")

    def is_expired(self, metadata: Dict) -> bool:
        uploaded_at = datetime.fromisoformat(metadata["uploaded_at"])
        return self.clock() >= uploaded_at + timedelta(days=metadata["retention_days"])

    def download(
        self,
        name: str,
        dest_dir: Path,
        commits: Optional[Sequence[str]] = None,
        pr_number: Optional[int] = None,
    ) -> Optional[Path]:
        metadata = self._read_metadata(name)
        if metadata is None:
            logger.info(f"No artifact named '{name}'")
            return None
        if metadata.get("consumed"):
            logger.info(f"Artifact '{name}' was already applied")
            return None
        if self.is_expired(metadata):
            logger.info(f"Artifact '{name}' has expired")
            return None
        if (commits is not None or pr_number is not None) and not self.matches(
            metadata, commits or (), pr_number
        ):
            logger.info(
                f"Artifact '{name}' was planned for commit {metadata.get('commit') or 'unknown'}"
                f" (PR {metadata.get('pr_number') or 'none'}), not for this change"
            )
            return None

        source = self._artifact_dir(name) / metadata["filename"]
        if not source.exists():
            logger.warning(f"Artifact '{name}' metadata present but payload missing")
            return None

        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        target = dest_dir / metadata["filename"]
        if source.resolve() != target.resolve():
            shutil.copyfile(source, target)
        logger.info(f"Downloaded artifact '{name}' from run {metadata.get('run_id') or 'unknown'}")
        return target

    @staticmethod
    def matches(metadata: Dict, commits: Sequence[str], pr_number: Optional[int]) -> bool:
        """True when the artifact was planned for one of commits or for pr_number."""
        commit = metadata.get("commit")
        if commit and commit in commits:
            return True
        return pr_number is not None and metadata.get("pr_number") == pr_number

    def consume(self, name: str) -> None:
        metadata = self._read_metadata(name)
        if metadata is None:
            return
        metadata["consumed"] = True
        self._write_metadata(name, metadata)
        logger.info(f"Artifact '{name}' marked as consumed")

    def purge_expired(self) -> int:
        """Delete expired and consumed artifacts; return how many were removed."""
        if not self.root.exists():
            return 0
        removed = 0
        for artifact_dir in self.root.iterdir():
            if not artifact_dir.is_dir():
                continue
            metadata = self._read_metadata(artifact_dir.name)
            if metadata is None or metadata.get("consumed") or self.is_expired(metadata):
                shutil.rmtree(artifact_dir)
                removed += 1
        return removed
