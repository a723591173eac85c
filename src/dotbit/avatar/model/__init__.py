"""
Avatar Data Model

Plain value types shared by the resolution pipeline, the web handlers and the CLI.

Key Components:
- avatar.py: linkage trail, token pointer, resolved avatar and failure outcome types
- health.py: readiness gauge fed by infrastructure failures
"""
