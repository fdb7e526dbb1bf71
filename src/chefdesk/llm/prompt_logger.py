"""
Markdown dumps of layout-generator calls, one file per call.

Off unless CHEFDESK_LOG_PROMPTS=1 or enable_prompt_logging() runs at startup.
Files go to prompt_logs/<process start>/NN_<node>.md.
"""

import os
from datetime import datetime
from pathlib import Path

LOG_DIR = Path("prompt_logs")

_enabled = os.getenv("CHEFDESK_LOG_PROMPTS", "0") == "1"
_run_dir: Path | None = None
_calls = 0


def enable_prompt_logging(enabled: bool = True) -> None:
    global _enabled
    _enabled = enabled


def is_prompt_logging_enabled() -> bool:
    return _enabled


def reset_session() -> None:
    global _run_dir, _calls
    _run_dir = None
    _calls = 0


def _next_path(node: str) -> Path:
    global _run_dir, _calls
    if _run_dir is None:
        _run_dir = LOG_DIR / datetime.now().strftime("%Y%m%d_%H%M%S")
    _run_dir.mkdir(parents=True, exist_ok=True)
    _calls += 1
    return _run_dir / f"{_calls:02d}_{node}.md"


def _fenced(text: str) -> str:
    return f"```\n{text}\n```"


def log_prompt(
    *,
    node: str,
    model: str,
    system_prompt: str,
    user_prompt: str,
    response: str | None = None,
    error: str | None = None,
) -> Path | None:
    """Write one call's prompts and raw reply. None when logging is off."""
    if not _enabled:
        return None

    reply = f"Error: {error}" if error else (response or "(empty reply)")
    sections = [
        f"# {node} ({model}) at {datetime.now().isoformat(timespec='seconds')}",
        "## System",
        _fenced(system_prompt),
        "## User",
        _fenced(user_prompt),
        "## Reply",
        _fenced(reply),
    ]
    path = _next_path(node)
    path.write_text("\n\n".join(sections) + "\n", encoding="utf-8")
    return path
