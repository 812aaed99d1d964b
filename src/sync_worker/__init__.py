"""Celery worker for catalog synchronization."""
