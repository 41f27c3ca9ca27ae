#!/usr/bin/env python3
"""
Execution entry point for the Touché 2021 retrieval program.

This script makes the src/ layout importable without installation and executes the main CLI application.
"""
import sys
import logging
from pathlib import Path
from typing import NoReturn


def setup_project_path() -> Path:
    """Puts the package source directory on sys.path and returns the project root.

    Returns:
        Path: A Path object for the project root directory.
    """
    repo_root = Path(__file__).resolve().parent.parent
    src_dir = repo_root / "src"
    if str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))
    return repo_root


def main() -> NoReturn:
    """Executes the main program.

    Handles import failures and interrupts that happen before the CLI sets up logging.
    """
    try:
        setup_project_path()

        from touche2021.cli import main as run_main
        run_main()

    except ImportError as e:
        logging.basicConfig(
            level=logging.ERROR,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        logging.error(f"Failed to import required modules: {e}")
        logging.error("Please ensure all dependencies are installed (pip install -e .)")
        sys.exit(1)

    except KeyboardInterrupt:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        logging.info("\nProgram execution interrupted by user")
        sys.exit(130)

    sys.exit(0)


if __name__ == "__main__":
    main()
