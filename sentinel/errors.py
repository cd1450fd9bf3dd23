from __future__ import annotations

from pathlib import Path
from typing import Optional


class SentinelError(Exception):
    code = "sentinel_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.code.replace("_", " ").capitalize()


class KnowledgeBaseLoadError(SentinelError):
    code = "knowledge_base_load_error"

    def __init__(self, message: str = "", *, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path
