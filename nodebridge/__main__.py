"""
Entry point for running nodebridge as a module: python -m nodebridge
"""

from nodebridge.cli.commands import app

if __name__ == "__main__":
    app()
