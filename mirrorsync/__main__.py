"""
Main entry point for the mirrorsync CLI.
"""

from mirrorsync.cli import cli


def main() -> None:
    """Main function for the mirrorsync CLI."""
    cli()


if __name__ == "__main__":
    main()
