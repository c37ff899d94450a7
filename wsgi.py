"""
WSGI / Flask CLI entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi db upgrade
    flask --app wsgi import-csv journey.csv --name "Renewals"
    flask --app wsgi seed-sample-journey
    gunicorn wsgi:app
"""

from journey_map import create_app

app = create_app()
