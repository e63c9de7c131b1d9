"""Configuration: TOML discovery, frozen section models, unified settings."""
