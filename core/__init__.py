"""Task domain: models and services."""
