"""Pure helper modules for the FabStorefront application."""

__all__ = [
    "pricing",
    "status_machine",
]
