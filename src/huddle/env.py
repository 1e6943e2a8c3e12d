"""
``.env`` loading for API keys and loop limits.

Provider adapters, ``LLMConfig.from_env``, ``OrchestratorConfig.from_env`` and
``CostLimits.from_env`` all call :func:`load_default_env` before reading
``os.environ``. Variables already set in the process environment always win.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

ENV_FILENAME = ".env"
SEARCH_DEPTH = 3


def parse_env_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Parse one ``KEY=value`` line.

    Accepts an ``export`` prefix and single or double quotes. Unquoted values
    lose a trailing `` # comment``. Returns None for blanks, comments and
    lines without ``=``.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None
    if stripped.startswith("export "):
        stripped = stripped[len("export "):].lstrip()
    key, value = stripped.split("=", 1)
    key = key.strip()
    if not key:
        return None
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    elif " #" in value:
        value = value.split(" #", 1)[0].rstrip()
    return key, value


def load_env_if_present(candidate_paths: Iterable[Path]) -> Optional[Path]:
    """
    Load key=value pairs from the first readable file in ``candidate_paths``.

    Returns:
        The file that was loaded, or None when no candidate could be read.
    """
    for env_path in candidate_paths:
        if not env_path.is_file():
            continue
        try:
            lines = env_path.read_text().splitlines()
        except OSError as exc:
            logger.debug("Could not read %s: %s", env_path, exc)
            continue
        loaded = 0
        for line in lines:
            pair = parse_env_line(line)
            if pair is None:
                continue
            key, value = pair
            if key not in os.environ:
                os.environ[key] = value
                loaded += 1
        logger.debug("Loaded %d variable(s) from %s", loaded, env_path)
        return env_path
    return None


def default_env_candidates(start: Optional[Path] = None) -> List[Path]:
    """``.env`` in ``start`` (default: cwd) and up to ``SEARCH_DEPTH`` parents."""
    start = (start or Path.cwd()).resolve()
    directories = [start, *start.parents][: SEARCH_DEPTH + 1]
    return [directory / ENV_FILENAME for directory in directories]


def load_default_env(start: Optional[Path] = None) -> Optional[Path]:
    """Load the nearest ``.env`` walking up from ``start`` (default: cwd)."""
    return load_env_if_present(default_env_candidates(start))


__all__ = [
    "ENV_FILENAME",
    "default_env_candidates",
    "load_default_env",
    "load_env_if_present",
    "parse_env_line",
]
