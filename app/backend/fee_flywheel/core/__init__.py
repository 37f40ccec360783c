"""Core configuration, logging, database and exception utilities."""
