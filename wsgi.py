"""
Flask-Migrate / Alembic entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi db migrate -m "description"
    gunicorn wsgi:app
"""

from conecta import create_app

app = create_app()
