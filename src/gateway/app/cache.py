"""Write-only snapshots of detection results.

Every successful ``/v1/analyze-image`` call leaves one JSON file named after
the SHA-256 of the image payload, so a misbehaving detection can be inspected
after the fact.  The gateway never reads these files back.
"""

import hashlib
import json
import logging
import os
import time
from pathlib import Path

from .config import settings

logger = logging.getLogger("gateway.snapshots")


class SnapshotStore:
    """Directory of ``<sha256>.json`` detection records."""

    SUFFIX = ".json"

    def __init__(self, root: str | Path | None = None):
        self.root: Path = Path(root or settings.snapshot_dir).expanduser()
        self.enabled = True

    async def connect(self):
        """Create the snapshot directory; disable the store if that fails."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            logger.info("Detection snapshots will be written to %s", self.root)
        except OSError as exc:
            self.enabled = False
            logger.error("Cannot create snapshot dir %s (%s); snapshots disabled", self.root, exc)

    async def disconnect(self):
        return

    @staticmethod
    def key_for(image_b64: str) -> str:
        return hashlib.sha256(image_b64.encode("ascii", errors="ignore")).hexdigest()

    def path_for_key(self, key_hash: str) -> Path:
        return self.root / f"{key_hash}{self.SUFFIX}"

    def entries(self) -> list[Path]:
        """Snapshot files currently on disk, oldest first."""
        if not self.root.is_dir():
            return []
        return sorted(self.root.glob(f"*{self.SUFFIX}"), key=lambda p: p.stat().st_mtime)

    async def write(self, image_b64: str, record: dict) -> Path | None:
        """Persist ``record`` for this image; returns the path, or None if skipped."""
        if not self.enabled:
            return None

        key_hash = self.key_for(image_b64)
        path = self.path_for_key(key_hash)
        tmp = path.with_suffix(".tmp")
        payload = {"written_at": time.time(), **record}

        try:
            tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            # One failed write does not disable the store
            logger.error("Snapshot write error for %s: %s", path, exc)
            return None

        logger.info("Stored detection snapshot %s (%d block(s))", key_hash[:16], len(record.get("blocks", [])))
        return path

    async def clear(self) -> int:
        """Delete every snapshot; returns how many were removed."""
        removed = 0
        for entry in self.entries():
            try:
                entry.unlink(missing_ok=True)
                removed += 1
            except OSError as exc:
                logger.warning("Failed to delete snapshot %s: %s", entry, exc)
        return removed


snapshots = SnapshotStore()
