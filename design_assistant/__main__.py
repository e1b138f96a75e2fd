from __future__ import annotations

import os

import uvicorn


def main() -> None:
    """Serve the HTTP app; HOST/PORT come from the environment."""
    uvicorn.run(
        "design_assistant.app:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
