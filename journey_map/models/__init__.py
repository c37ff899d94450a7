"""
JTBD Journey Map
SQLAlchemy extension instance shared by all model modules.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
