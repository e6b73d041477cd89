"""Storage layer for the upstream feed and the downstream change store."""
