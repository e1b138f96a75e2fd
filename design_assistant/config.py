from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    """Configuration container for models, catalog sources, caches, and runtime limits."""
    gemini_api_key: str
    gemini_model: str
    figma_token: str
    figma_api_base: str
    figma_file_key: str
    figma_docs_file_key: str
    storybook_base_url: str
    storybook_index_path: Path
    guidelines_dir: Path
    prompts_dir: Path
    max_tool_iterations: int
    max_sessions: int
    http_timeout: float
    visual_index_ttl: float
    docs_index_ttl: float
    story_index_ttl: float
    resolution_ttl: float
    deep_text_ttl: float


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for default paths.
    Failure Modes: Invalid numeric env values raise ValueError.
    If Removed: App cannot configure catalogs/models and fails at startup.
    Testing Notes: Verify defaults and overrides via environment variables.
    """
    # Resolve snapshot, guideline, and prompt paths, then build Settings.
    index_path = os.getenv("STORYBOOK_INDEX_PATH")
    if index_path:
        storybook_index = Path(index_path)
    else:
        storybook_index = (BASE_DIR / "data" / "storybook-index.json").resolve()

    guidelines = os.getenv("CONTENT_GUIDELINES_DIR")
    guidelines_dir = Path(guidelines) if guidelines else (BASE_DIR / "data" / "content-writing").resolve()

    prompts_dir = (BASE_DIR / "prompts").resolve()

    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        figma_token=os.getenv("FIGMA_TOKEN", ""),
        figma_api_base=os.getenv("FIGMA_API_BASE", "https://api.figma.com/v1"),
        figma_file_key=os.getenv("FIGMA_FILE_KEY", ""),
        figma_docs_file_key=os.getenv("FIGMA_DOCS_FILE_KEY", ""),
        storybook_base_url=os.getenv(
            "STORYBOOK_BASE_URL", "https://lightspeed.github.io/unified-components/react"
        ).rstrip("/"),
        storybook_index_path=storybook_index,
        guidelines_dir=guidelines_dir,
        prompts_dir=prompts_dir,
        max_tool_iterations=int(os.getenv("MAX_TOOL_ITERATIONS", "6")),
        max_sessions=int(os.getenv("MAX_SESSIONS", "100")),
        http_timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
        visual_index_ttl=float(os.getenv("VISUAL_INDEX_TTL", "60")),
        docs_index_ttl=float(os.getenv("DOCS_INDEX_TTL", "600")),
        story_index_ttl=float(os.getenv("STORY_INDEX_TTL", "60")),
        resolution_ttl=float(os.getenv("RESOLUTION_TTL", "300")),
        deep_text_ttl=float(os.getenv("DEEP_TEXT_TTL", "86400")),
    )
