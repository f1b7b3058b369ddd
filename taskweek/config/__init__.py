"""Configuration loading (YAML + bundled JSON schema)."""
