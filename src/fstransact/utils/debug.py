"""Debug utility for fstransact.

Provides a single debug() function that can be toggled via the
FSTRANSACT_DEBUG environment variable. Low-level modules (overlay store,
OS primitives, commit journal) trace through it; structured events go
through structlog instead.

Usage:
    from fstransact.utils.debug import debug

    debug(f"Staged write: {key}")

Environment:
    FSTRANSACT_DEBUG: Set to '1', 'true', 'yes' (case-insensitive) to enable
                      debug output. Any other value or unset disables it.
"""

import os
import sys
from typing import Any

# Determine if debug mode is enabled at module import time
_DEBUG_ENABLED = os.environ.get("FSTRANSACT_DEBUG", "").lower() in (
    "1",
    "true",
    "yes",
)


def debug(msg: Any) -> None:
    """Print debug message if FSTRANSACT_DEBUG is enabled.

    Args:
        msg: Message to print. Will be converted to string.

    Note:
        The environment variable is read at module import time. Changing it
        after import has no effect unless the module is reloaded.
    """
    if _DEBUG_ENABLED:
        print(f"[DEBUG] {msg}", file=sys.stdout)
