"""Outbound integrations used by route handlers."""
