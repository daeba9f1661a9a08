"""
Main entry point for the Monopoly match server.

Usage:
    python -m monopoly_server.main

Or:
    monopoly-server
"""

from monopoly_server.network.server import main


if __name__ == "__main__":
    main()
