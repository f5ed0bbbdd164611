"""HTTP API for copydesk."""
