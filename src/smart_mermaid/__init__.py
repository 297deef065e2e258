"""History core of the smart-mermaid diagram editor."""

__all__ = [
    "cli",
    "config",
    "editor",
    "history",
    "runtime",
]

__version__ = "0.1.0"
