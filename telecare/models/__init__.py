# telecare/models/__init__.py
from telecare.db.session import Base, engine

# Import model modules so SQLAlchemy registers all mappers.
from . import user  # noqa: F401
from . import health_assessment  # noqa: F401


def init_db() -> None:
    """Create tables if they don't exist."""
    Base.metadata.create_all(bind=engine)
