"""Core infrastructure: configuration, exceptions, logging and the service container."""
