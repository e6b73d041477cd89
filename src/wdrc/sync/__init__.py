"""Incremental sync engine: windowing, fetch-and-diff, and change persistence."""
