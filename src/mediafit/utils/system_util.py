"""
Utility functions for verifying binary availability.

Functions:
    - find_binary: Resolves a binary name to a full path on the system's PATH.
    - which_or_die: Checks for the presence of a specific binary on the system's
      PATH and terminates the process if it is unavailable.
"""
import shutil
import sys
from typing import Optional

from mediafit.utils.logger import safe_print


def find_binary(binary: str) -> Optional[str]:
    """Return the resolved path of `binary`, or None when it is not on PATH."""
    return shutil.which(binary)


def which_or_die(binary: str):
    """Check if a binary exists on PATH, exit if not found."""
    if find_binary(binary) is None:
        safe_print(f"ERROR: '{binary}' not found on PATH. Install it first (e.g. brew install ffmpeg).",
                   file=sys.stderr)
        sys.exit(2)
