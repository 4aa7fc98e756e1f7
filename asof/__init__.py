"""
ASOF Application.

- backend/: Database, services, JSON API, configuration, background tasks
- frontend/: Server-rendered public site and admin pages (Jinja2)
"""
