#!/usr/bin/env python3
"""
Run the tax office notification service.
"""

import os
import sys
from typing import Any, Dict


def uvicorn_options() -> Dict[str, Any]:
    """Keyword arguments for ``uvicorn.run``, read from the environment."""
    from config.settings import RealtimeSettings

    return {
        "factory": True,
        "host": os.getenv("HOST", "127.0.0.1"),
        "port": int(os.getenv("PORT", "8000")),
        "reload": os.getenv("APP_ENVIRONMENT", "development").lower() == "development",
        # Oversized frames are refused by the protocol layer before they are buffered
        "ws_max_size": RealtimeSettings().max_inbound_message_bytes,
    }


def main() -> None:
    # Make src importable
    repo_root = os.path.dirname(os.path.abspath(__file__))
    sys.path.insert(0, os.path.join(repo_root, "src"))

    import uvicorn

    uvicorn.run("web.app:build_default_app", **uvicorn_options())


if __name__ == "__main__":
    main()
