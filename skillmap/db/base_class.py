# Fichier: skillmap/db/base_class.py
from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    """
    Base class for every SQLAlchemy model of the taxonomy store.
    ``Base.metadata`` is what the startup hook and the tests create tables from.
    """
