#!/usr/bin/env python3
"""Compose Stack Manager - Main entry point."""

import sys
from pathlib import Path

# Allow running from a checkout without installing
sys.path.insert(0, str(Path(__file__).parent))


def main():
    """Main entry point."""
    from stack_manager.cli import main as cli_main
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
