"""Logging and Prometheus metrics for TagWatch."""
