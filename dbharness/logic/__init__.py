"""Harness logic: script-driven schema lifecycle, tracing and injection."""
