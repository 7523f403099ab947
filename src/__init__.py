"""Renimusic - the web front door of the Renimusic artist site.

An ASGI application built with FastAPI that renders the site's pages,
authenticates users, exposes an administrator area and delivers contact
form messages by email.

Architecture Overview:
- **API Layer**: FastAPI app, request pipeline stages and route groups
- **Core Layer**: Configuration, logging, tracing, errors and security
- **Services**: Outbound mail delivery
- **Infrastructure Layer**: Database access, session and rate limit stores
"""
