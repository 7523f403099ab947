"""Infrastructure layer for persistence and process-local state.

Key responsibilities:
- **Database access**: Async SQLAlchemy 2.0+ (PostgreSQL in production,
  SQLite for local runs and tests)
- **Repositories**: CRUD helpers for the ``users`` table
- **Session store**: Server-side session records with expiry
- **Rate limit store**: Fixed-window counters for admission control
"""
