"""Reporting core: admission control, dispatch and metrics session."""
