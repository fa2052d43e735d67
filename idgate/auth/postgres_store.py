"""
PostgreSQL-backed CredentialStore.

Each unit of work runs on one pooled connection: commit when the block
finishes, roll back on any failure. The ``users_email_key`` UNIQUE
constraint backs up the in-transaction email check, so of two concurrent
registrations for one email at most one commits.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional

import psycopg2
import psycopg2.extras

from idgate.auth.exceptions import EmailExistsError, PersistenceError
from idgate.auth.models import Authentication, User
from idgate.auth.store import CredentialStore
from idgate.utils.connection_pool import ConnectionPool, ConnectionPoolError
from idgate.utils.logging import get_logger

logger = get_logger(__name__)

EMAIL_UNIQUE_CONSTRAINT = 'users_email_key'

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id VARCHAR(64) PRIMARY KEY,
    email VARCHAR(256) NOT NULL,
    first_name VARCHAR(256),
    last_name VARCHAR(256),
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT users_email_key UNIQUE (email)
);

CREATE TABLE IF NOT EXISTS authentications (
    id VARCHAR(64) PRIMARY KEY,
    user_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    type VARCHAR(50) NOT NULL,
    identifier VARCHAR(256) NOT NULL,
    password VARCHAR(512),
    access_token TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT authentications_type_identifier_key UNIQUE (type, identifier),
    CONSTRAINT authentications_user_type_key UNIQUE (user_id, type)
);

CREATE INDEX IF NOT EXISTS idx_authentications_user_id ON authentications(user_id);
"""


class PostgresCredentialStore(CredentialStore):
    """Credential store on top of the shared psycopg2 connection pool."""

    def __init__(self, pool: ConnectionPool):
        self._pool = pool

    def create_tables(self) -> None:
        """Create the users and authentications tables if missing."""
        with self._transaction() as cursor:
            cursor.execute(SCHEMA_SQL)
        logger.info("Auth tables ensured")

    @contextmanager
    def _transaction(self) -> Iterator[psycopg2.extensions.cursor]:
        try:
            with self._pool.get_connection() as conn:
                try:
                    with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                        yield cursor
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        except psycopg2.IntegrityError as e:
            if getattr(e.diag, 'constraint_name', None) == EMAIL_UNIQUE_CONSTRAINT:
                raise EmailExistsError("User with that email already exists") from e
            logger.error(f"Integrity error in auth transaction: {e.pgcode}")
            raise PersistenceError("Credential constraint violated") from e
        except (psycopg2.Error, ConnectionPoolError) as e:
            logger.error(f"Auth transaction failed: {e}")
            raise PersistenceError(f"Transaction failed: {e}") from e

    def _select_user(self, cursor, *, user_id: Optional[str] = None, email: Optional[str] = None) -> Optional[User]:
        if user_id is not None:
            cursor.execute("SELECT * FROM users WHERE id = %s", (user_id,))
        else:
            cursor.execute("SELECT * FROM users WHERE email = %s", (email,))
        return User.from_db_row(cursor.fetchone())

    def _select_authentication(
        self, cursor, *, type: str, identifier: Optional[str] = None, user_id: Optional[str] = None
    ) -> Optional[Authentication]:
        if identifier is not None:
            cursor.execute(
                "SELECT * FROM authentications WHERE type = %s AND identifier = %s",
                (type, identifier),
            )
        else:
            cursor.execute(
                "SELECT * FROM authentications WHERE type = %s AND user_id = %s",
                (type, user_id),
            )
        return Authentication.from_db_row(cursor.fetchone())

    def _select_authentications(self, cursor, user_id: str) -> List[Authentication]:
        cursor.execute(
            "SELECT * FROM authentications WHERE user_id = %s ORDER BY created_at",
            (user_id,),
        )
        return [Authentication.from_db_row(row) for row in cursor.fetchall()]

    def _insert_user(self, cursor, user: User) -> User:
        cursor.execute(
            """
            INSERT INTO users (id, email, first_name, last_name)
            VALUES (%s, %s, %s, %s)
            RETURNING *
            """,
            (user.id, user.email, user.first_name, user.last_name),
        )
        return User.from_db_row(cursor.fetchone())

    def _insert_authentication(self, cursor, auth: Authentication) -> Authentication:
        cursor.execute(
            """
            INSERT INTO authentications (id, user_id, type, identifier, password, access_token)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (auth.id, auth.user_id, auth.type, auth.identifier, auth.password, auth.access_token),
        )
        return Authentication.from_db_row(cursor.fetchone())
