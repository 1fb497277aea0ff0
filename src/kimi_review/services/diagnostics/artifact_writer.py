"""Keep the collected blob and the raw provider response on disk for post-run inspection."""

from pathlib import Path
from typing import Optional

from kimi_review.utils.logging import get_logger

logger = get_logger(__name__)

CODE_BLOB_FILE = "code_blob.txt"
RESPONSE_FILE = "resp.json"


class ArtifactWriter:
    """Writes run artifacts under ``directory``; a ``None`` directory disables writing."""

    def __init__(self, directory: Optional[str]):
        self.directory = Path(directory) if directory else None

    def write_code_blob(self, data: bytes) -> Optional[Path]:
        return self._write(CODE_BLOB_FILE, data)

    def write_response(self, raw_response: Optional[str]) -> Optional[Path]:
        if raw_response is None:
            return None
        return self._write(RESPONSE_FILE, raw_response.encode("utf-8"))

    def _write(self, name: str, data: bytes) -> Optional[Path]:
        if self.directory is None:
            return None
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / name
        path.write_bytes(data)
        logger.debug(f"Wrote {len(data)} bytes to {path}")
        return path
