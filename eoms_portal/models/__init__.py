"""
EOMS Compliance Portal
Model package — the shared Flask-SQLAlchemy handle.

Every model module imports ``db`` from here:
    from eoms_portal.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
