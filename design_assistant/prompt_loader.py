from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger("dsassist.prompts")


def load_prompt(prompt_path: Path) -> str:
    """Purpose: Load a prompt file as UTF-8 text and strip BOM if present.
    Inputs/Outputs: Input is a Path to the prompt file; output is the decoded string.
    Side Effects / State: None; pure function reading the filesystem.
    Dependencies: Uses Path.read_text/read_bytes; used by the agent and orchestrator.
    Failure Modes: UnicodeDecodeError triggers a fallback decode with errors ignored,
        which can drop invalid bytes.
    If Removed: System prompts cannot be loaded and every model call lacks instructions.
    Testing Notes: Validate BOM-stripping and fallback decoding on non-UTF8 files.
    """
    # Read as UTF-8 and fall back to a tolerant decode if needed.
    try:
        return prompt_path.read_text(encoding="utf-8").lstrip("\ufeff")
    except UnicodeDecodeError:
        raw = prompt_path.read_bytes()
        return raw.decode("utf-8", errors="ignore").lstrip("\ufeff")


def load_content_guidelines(directory: Path) -> Dict[str, Any]:
    """Purpose: Merge every JSON guideline file in a directory into one object.
    Inputs/Outputs: Input is the directory; output is the merged dict.
    Side Effects / State: Reads files in name order.
    Dependencies: Uses json; consumed by the copy review and general prompts.
    Failure Modes: A missing directory returns {}; unreadable or non-object files are
        skipped with a warning.
    If Removed: Copy review runs without the house writing rules.
    Testing Notes: Later files override earlier keys.
    """
    # Name order makes the override order deterministic.
    merged: Dict[str, Any] = {}
    if not directory.is_dir():
        logger.warning("guidelines_dir=%s status=missing", directory)
        return merged
    for path in sorted(directory.glob("*.json")):
        try:
            data = json.loads(path.read_text(encoding="utf-8-sig"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("guidelines_file=%s status=skipped error=%s", path.name, exc)
            continue
        if isinstance(data, dict):
            merged.update(data)
    return merged


def render_prompt(template: str, **values: str) -> str:
    """Replace {{name}} placeholders; other braces in the prompt are left alone."""
    rendered = template
    for key, value in values.items():
        rendered = rendered.replace("{{" + key + "}}", value)
    return rendered
