"""Module entry point for ``python -m copydesk_cli``."""

from copydesk_cli.main import app

if __name__ == "__main__":
    app()
