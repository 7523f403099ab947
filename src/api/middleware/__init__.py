"""ASGI middleware making up the request pipeline.

Each module implements one stage; ``src.api.pipeline`` decides their order.

- **security_headers**: CSP and hardening headers
- **request_context**: correlation and request ids
- **request_logging**: access log with timings
- **error_handler**: exception handlers and the error boundary
- **cookies**, **static_assets**, **templates**: request preparation
- **body_parsing**, **sanitization**: parsed and cleaned input
- **sessions**, **flash**: server-side session and flash messages
- **rate_limit**: fixed-window admission control
"""
