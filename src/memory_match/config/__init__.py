"""Packaged configuration resources (default_settings.yaml)."""
