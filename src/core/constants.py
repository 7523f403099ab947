"""Core application constants."""

# Security and redaction
REDACTED = "[REDACTED]"
