from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


def read_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read ``name`` from the environment, falling back to the file named by ``<name>_FILE``."""
    value = os.getenv(name)
    if value not in {None, ""}:
        return value

    file_var = os.getenv(f"{name}_FILE")
    if not file_var:
        return default

    try:
        content = Path(file_var).read_text(encoding="utf-8")
    except OSError:
        return default
    content = content.rstrip("\r\n")
    return content if content else default


def read_env_path(name: str, default: Path) -> Path:
    value = read_env(name)
    return Path(value).expanduser() if value else default
