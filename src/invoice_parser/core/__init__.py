"""Core configuration, error catalog, exceptions and logging."""
