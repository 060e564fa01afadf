"""Typed parameter models, one module per capability family."""
