import os
import time

import structlog

logger = structlog.get_logger(__name__)


class AttachmentStore:
    """Stores uploaded files on disk and hands back the path kept on the order."""

    def __init__(self, upload_dir: str = "uploads"):
        self.upload_dir = upload_dir

    def save(self, data: bytes, original_name: str) -> str:
        os.makedirs(self.upload_dir, exist_ok=True)
        safe_name = os.path.basename(original_name or "") or "upload"
        path = os.path.join(self.upload_dir, f"{int(time.time() * 1000)}-{safe_name}")
        with open(path, "wb") as f:
            f.write(data)
        logger.info("attachment_saved", path=path, size=len(data))
        return path
