"""Core infrastructure — config, exceptions, events, logging, CLI."""
