"""
Database Package Initialization.

============================================================
DATABASE PERSISTENCE LAYER
============================================================

SQLAlchemy engine/session management and the ORM models
for customer risk profiles and return requests.

All writes go through explicit transactions; failures raise
core.exceptions.DatabaseError.

============================================================
"""

from .engine import (
    Base,
    create_database_engine,
    configure_engine,
    dispose_engine,
    get_engine,
    get_session,
    get_session_factory,
    get_db_session,
    transaction_scope,
    initialize_database,
    verify_database_connection,
    verify_required_tables,
    create_all_tables,
    REQUIRED_TABLES,
)

from .models import (
    CustomerRiskProfile,
    ReturnRequest,
)


__version__ = "1.0.0"


__all__ = [
    "__version__",
    "Base",
    "create_database_engine",
    "configure_engine",
    "dispose_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    "get_db_session",
    "transaction_scope",
    "initialize_database",
    "verify_database_connection",
    "verify_required_tables",
    "create_all_tables",
    "REQUIRED_TABLES",
    "CustomerRiskProfile",
    "ReturnRequest",
]
