"""Core package: application settings."""
