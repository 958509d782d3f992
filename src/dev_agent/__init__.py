"""
Dev Agent: goal identity, storage and GitHub synchronization

Tracks goals in an embedded SQLite store, gates their state changes through
validation rules and mirrors them onto GitHub issues and milestones.
"""

try:
    from importlib.metadata import version
    __version__ = version("dev-agent")
except Exception:
    __version__ = "0.0.0"  # Fallback for development

__all__ = ["__version__"]
