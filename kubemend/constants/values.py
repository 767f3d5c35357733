"""Scalar constants for kubemend.

All application-level constants with proper type hints using Final.
"""

from typing import Final

# ============================================================================
# Application
# ============================================================================

APP_NAME: Final = "kubemend"

# ============================================================================
# Kubernetes object markers
# ============================================================================

MIRROR_POD_ANNOTATION: Final = "kubernetes.io/config.mirror"
DAEMONSET_OWNER_KIND: Final = "DaemonSet"

# ============================================================================
# Exit codes
# ============================================================================

EXIT_OK: Final = 0
EXIT_PARTIAL_FAILURE: Final = 1
EXIT_FATAL: Final = 2

# ============================================================================
# Health status (markup for rich text display)
# ============================================================================

HEALTHY: Final = "[green]HEALTHY[/green]"
UNHEALTHY: Final = "[red]UNHEALTHY[/red]"

__all__ = [
    "APP_NAME",
    "DAEMONSET_OWNER_KIND",
    "EXIT_FATAL",
    "EXIT_OK",
    "EXIT_PARTIAL_FAILURE",
    "HEALTHY",
    "MIRROR_POD_ANNOTATION",
    "UNHEALTHY",
]
