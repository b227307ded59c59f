"""Core data models, exceptions and constants."""
