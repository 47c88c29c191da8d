from cardsmith.config import get_settings
from cardsmith.db.interfaces.postgresql import PostgreSQLDatabase


def make_database() -> PostgreSQLDatabase:
    """
    Create the database wrapper from application settings.

    Returns:
        PostgreSQLDatabase: engine and session factory
    """
    settings = get_settings()
    database = PostgreSQLDatabase(
        url=settings.postgres_database_url,
        echo=settings.postgres_echo_sql,
        pool_size=settings.postgres_pool_size,
    )
    database.startup()
    return database
