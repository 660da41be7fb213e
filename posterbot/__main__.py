"""Entry point for running posterbot as a module or installed script.

Usage:
    posterbot / python -m posterbot                    → API server (uvicorn)
    posterbot <command> ... / python -m posterbot <command> ... → CLI
"""

import sys


def run() -> None:
    """Entry point: no args → API server, else → CLI."""
    from posterbot.cli import main

    if len(sys.argv) == 1:
        sys.argv.append("serve")
    sys.exit(main())


if __name__ == "__main__":
    run()
