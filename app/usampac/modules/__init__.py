"""
Dashboard sections live under this package.

Each section owns its blueprint (admin.py), backend calls (service.py) and
templates, while reusing the platform pieces: auth, the admin gate, audit
logging, form normalization and the request-scoped backend clients.
"""
