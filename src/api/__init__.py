"""HTTP layer of the Renimusic site, built on FastAPI.

Key components:
- **main**: Application factory and lifecycle management
- **pipeline**: Ordered stage list installed as ASGI middleware
- **middleware**: One module per pipeline stage
- **routes**: Default pages, contact form, auth, admin and health
- **auth** / **templating**: Session authentication and page rendering
- **schemas**: Form input and error response models
"""
