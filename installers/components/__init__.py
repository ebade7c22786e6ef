"""Installer modules; each registers itself on import."""
