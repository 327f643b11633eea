"""Main CLI application module."""

from .user_commands import app


def main() -> None:
    """Main entry point for the CLI."""
    app()


__all__ = ["app", "main"]
