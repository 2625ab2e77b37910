"""
CLI module for sagaverify - contains command-line interface components.
"""

from sagaverify.cli.app import cli


def main():
    """Main entry point for the sagaverify CLI."""
    cli()


__all__ = ["cli", "main"]
