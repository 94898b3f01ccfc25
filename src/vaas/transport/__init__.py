"""Duplex text transports used by a verdict session."""
