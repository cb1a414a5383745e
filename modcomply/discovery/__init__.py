"""Module structure discovery."""

from .discoverer import (
    IGNORED_DIRECTORIES,
    DiscoveryOptions,
    ModuleDiscoverer,
    discover_module_paths,
    is_generated,
)

__all__ = [
    "IGNORED_DIRECTORIES",
    "DiscoveryOptions",
    "ModuleDiscoverer",
    "discover_module_paths",
    "is_generated",
]
