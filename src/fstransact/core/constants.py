"""Core constants for fstransact.

This module defines constants used throughout the package:
- Default namespace and virtual URI scheme
- Default permission modes
- Environment variable names read by the configuration helpers
"""

# ============================================================================
# Namespaces
# ============================================================================

#: Namespace identifier used when none is configured
DEFAULT_NAMESPACE: str = "vfs-transact"

#: Separator between a namespace and a virtual key in a virtual URI
URI_SEPARATOR: str = "://"

# ============================================================================
# Permission modes
# ============================================================================

#: Mode for directories created by mkdir and implicit parent creation
DEFAULT_DIR_MODE: int = 0o777

#: Default umask applied by chmod
DEFAULT_UMASK: int = 0o000

#: Maximum number of symlinks followed when resolving a path
MAX_SYMLINK_HOPS: int = 40

# ============================================================================
# Environment
# ============================================================================

ENV_BASE_DIR: str = "FSTRANSACT_BASE_DIR"
ENV_NAMESPACE: str = "FSTRANSACT_NAMESPACE"
ENV_JOURNAL_DIR: str = "FSTRANSACT_JOURNAL_DIR"
ENV_DEBUG: str = "FSTRANSACT_DEBUG"

#: Schema version written into commit journal headers
JOURNAL_SCHEMA_VERSION: str = "1.0"
