"""Shared HTTP client."""
