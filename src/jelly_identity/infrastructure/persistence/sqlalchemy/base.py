"""SQLAlchemy declarative base for jelly_identity models.

Uses the same metadata as jelly's Base to allow cross-module foreign keys.
"""

from jelly.infrastructure.persistence.sqlalchemy.models.base import Base

IdentityBase = Base
