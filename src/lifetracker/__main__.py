"""Main entry point for ``python -m lifetracker``."""

from lifetracker.cli import main

if __name__ == "__main__":
    main()
