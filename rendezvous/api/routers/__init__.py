"""
FastAPI routers for the import and integration endpoints.

Each module exposes a ``router`` that main.py registers on the application.
"""
