"""Core infrastructure: configuration, logging, events and the durable cursor store."""
