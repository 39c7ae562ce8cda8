"""Main entry point for vocabsync."""
from vocabsync.cli import app


def main() -> None:
    """Run the command line interface."""
    app()


if __name__ == "__main__":
    main()
