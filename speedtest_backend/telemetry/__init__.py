"""Telemetry persistence and chart presentation."""
