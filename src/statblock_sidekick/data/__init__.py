"""Bundled sidekick class definitions."""
