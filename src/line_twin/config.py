"""Configuration schemas - re-exports from loader for convenience."""

# Re-export config types from loader
from line_twin.loader import (
    BufferConfig,
    ConfigLoader,
    DefaultsConfig,
    HostConfig,
    LineConfig,
    LinkConfig,
    ResolvedConfig,
    RunConfig,
    StationConfig,
)

__all__ = [
    "ConfigLoader",
    "DefaultsConfig",
    "HostConfig",
    "RunConfig",
    "LineConfig",
    "BufferConfig",
    "StationConfig",
    "LinkConfig",
    "ResolvedConfig",
]
