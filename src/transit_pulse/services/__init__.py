"""Pulse pipeline services."""
