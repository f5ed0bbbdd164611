"""Port protocols and structured errors for copydesk core."""
