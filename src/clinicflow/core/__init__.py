"""Core infrastructure: configuration, exceptions, logging."""
