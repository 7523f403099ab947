"""Core infrastructure package for shared application functionality.

This package provides the foundational components used across all layers
of the Renimusic site:

- **config**: Centralized configuration management with environment support
- **context**: Request context and correlation ID management
- **exceptions**: Structured exception hierarchy with error codes
- **error_context**: Sensitive data sanitization for safe logging
- **logging**: Structured logging with Loguru
- **observability**: Distributed tracing with OpenTelemetry
- **security**: Password hashing for the local login strategy
"""
