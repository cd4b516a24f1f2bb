"""Logging and metrics for podtail."""
