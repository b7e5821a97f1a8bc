"""Atomic JSON file persistence shared by the trigger and session stores."""

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def read_json(path: Path) -> Optional[Any]:
    """Read a JSON file; None when it does not exist."""
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


def write_json_atomic(path: Path, data: Any, backup: bool = True) -> None:
    """Write JSON via temp file + rename, keeping a ``.bak`` of the previous file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False)

    if backup and path.exists():
        try:
            shutil.copy2(str(path), str(path.with_suffix(path.suffix + ".bak")))
        except OSError as e:
            logger.debug(f"Backup creation failed (non-fatal): {e}")

    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".tmp", dir=str(path.parent))
    try:
        try:
            os.write(fd, content.encode("utf-8"))
        finally:
            os.close(fd)
        os.replace(tmp_path, str(path))
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
