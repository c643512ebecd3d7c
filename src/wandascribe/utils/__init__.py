"""Logging and telemetry helpers."""
