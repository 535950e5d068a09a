"""Polling and diagnostics utilities."""
