"""Core configuration, logging, errors and field encryption."""
