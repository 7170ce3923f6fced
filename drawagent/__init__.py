"""
drawagent - Natural language drawing assistant

An LLM-driven agent that breaks a picture description down into:
- Circles
- Rectangles
- Ellipses
- Lines
"""

__version__ = "0.1.0"

import os
from pathlib import Path

# Package paths
PACKAGE_DIR = Path(__file__).parent
PROJECT_ROOT = PACKAGE_DIR.parent


def get_data_dir() -> Path:
    """Get the user data directory for drawagent."""
    custom_dir = os.environ.get("DRAWAGENT_DATA_DIR")
    if custom_dir:
        return Path(custom_dir)

    # Default to ~/.drawagent
    return Path.home() / ".drawagent"
