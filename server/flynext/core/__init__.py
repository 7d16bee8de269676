"""Core application modules: configuration, database, errors, security and observability."""
