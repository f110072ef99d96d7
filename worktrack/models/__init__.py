"""
models/__init__.py
------------------
Re-export all models so Alembic's env.py and SqlRecordStore can discover
every table via a single import:

    from worktrack.models import Base, TABLES
"""

from worktrack.db.base import Base
from worktrack.models.credential import Credential
from worktrack.models.license import License
from worktrack.models.organization import Department, Organization
from worktrack.models.user import User

# Wire table name → ORM model
TABLES = {
    model.__tablename__: model
    for model in (Organization, Department, User, License, Credential)
}

__all__ = ["Base", "Organization", "Department", "User", "License", "Credential", "TABLES"]
