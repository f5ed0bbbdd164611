"""Storage and logging adapters for copydesk."""
