"""
SideHive Functions - Prompt Logger.

Logs LLM prompts and responses to markdown files for debugging.
Enabled via SIDEHIVE_LOG_PROMPTS=1 or `sidehive serve --log-prompts`.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any

LOG_PROMPTS = os.getenv("SIDEHIVE_LOG_PROMPTS", "0") == "1"
LOG_DIR = Path("prompt_logs")

_run_id: str | None = None
_call_counter: int = 0


def enable_prompt_logging(enabled: bool = True) -> None:
    """Enable or disable prompt logging."""
    global LOG_PROMPTS
    LOG_PROMPTS = enabled


def _get_run_dir() -> Path:
    global _run_id
    if _run_id is None:
        _run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = LOG_DIR / _run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def log_prompt(
    *,
    operation: str,
    model: str,
    system_prompt: str,
    user_prompt: str,
    response_model: str,
    response: Any = None,
    error: str | None = None,
) -> Path | None:
    """
    Write one prompt/response pair to prompt_logs/<run>/NN_<operation>.md.

    Returns the file path, or None if logging is disabled.
    """
    if not LOG_PROMPTS:
        return None

    global _call_counter
    _call_counter += 1
    filepath = _get_run_dir() / f"{_call_counter:02d}_{operation}.md"

    content = (
        f"# LLM Call: {operation}\n\n"
        f"**Time:** {datetime.now().isoformat()}\n"
        f"**Model:** {model}\n"
        f"**Response Model:** {response_model}\n\n"
        f"## System Prompt\n\n```\n{system_prompt}\n```\n\n"
        f"## User Prompt\n\n```\n{user_prompt}\n```\n\n"
        f"## Response\n\n"
    )
    if error:
        content += f"**ERROR:** {error}\n"
    elif response is not None:
        data = response.model_dump() if hasattr(response, "model_dump") else response
        content += f"```json\n{json.dumps(data, indent=2, default=str)}\n```\n"

    filepath.write_text(content, encoding="utf-8")
    return filepath
