"""
Avatar Service Application Layer

Exposes avatar resolution over HTTP with aiohttp.

Key Components:
- cli.py: Entry point for running the web service
- server.py: Web server configuration, shared client session and middleware setup
- config.py: Configuration management using Pydantic settings
- handlers/: Request handlers
- tasks.py: Background health gauge task
- metrics.py: Metrics abstraction over aio-statsd

Endpoints:
- GET /internal/alive: liveness check
- GET /internal/ready: readiness check driven by the health gauge
- GET /internal/api/avatar?account=...: resolve one or more accounts
"""
