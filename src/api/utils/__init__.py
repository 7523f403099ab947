"""Utility modules for API-specific functionality.

- **responses**: JSON response class using orjson
- **client**: Client address resolution shared by logging and rate limiting
"""
