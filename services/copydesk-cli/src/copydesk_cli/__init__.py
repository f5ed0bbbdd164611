"""Command line interface for copydesk."""
