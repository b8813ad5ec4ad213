"""Configuration, logging and exception taxonomy."""
