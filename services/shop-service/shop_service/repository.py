from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone

from .database import get_connection, is_unique_violation
from .entities import User
from .errors import AlreadyExists, NotFound

_USER_COLUMNS = "id, username, email, password_hash, created_at, updated_at"


class UserRepository:
    """Data-access layer for the users table."""

    def __init__(self, connection_factory=get_connection):
        self._connection_factory = connection_factory

    @contextmanager
    def _connection(self):
        conn = self._connection_factory()
        try:
            yield conn
        finally:
            conn.close()

    def create(self, username: str, email: str, password_hash: str) -> User:
        now = datetime.now(timezone.utc).isoformat()
        with self._connection() as conn:
            placeholder = _placeholder(conn)
            sql = f"""
                INSERT INTO users (username, email, password_hash, created_at, updated_at)
                VALUES ({placeholder}, {placeholder}, {placeholder}, {placeholder}, {placeholder})
            """
            params = (username, email, password_hash, now, now)
            try:
                if _is_postgres(conn):
                    user_id = conn.execute(sql + " RETURNING id;", params).fetchone()["id"]
                else:
                    user_id = conn.execute(sql + ";", params).lastrowid
                conn.commit()
            except Exception as exc:
                if is_unique_violation(exc):
                    raise AlreadyExists("user already exists") from exc
                raise
        return User(
            id=user_id,
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )

    def get_by_id(self, user_id: int) -> User:
        return self._get_one("id", user_id)

    def get_by_username(self, username: str) -> User:
        return self._get_one("username", username)

    def get_by_email(self, email: str) -> User:
        return self._get_one("email", email)

    def update(self, user: User) -> User:
        now = datetime.now(timezone.utc).isoformat()
        with self._connection() as conn:
            placeholder = _placeholder(conn)
            try:
                cursor = conn.execute(
                    f"""
                    UPDATE users
                    SET username = {placeholder}, email = {placeholder},
                        password_hash = {placeholder}, updated_at = {placeholder}
                    WHERE id = {placeholder};
                    """,
                    (user.username, user.email, user.password_hash, now, user.id),
                )
                conn.commit()
            except Exception as exc:
                if is_unique_violation(exc):
                    raise AlreadyExists("user already exists") from exc
                raise
            if cursor.rowcount == 0:
                raise NotFound("user not found")
        return self.get_by_id(user.id)

    def delete(self, user_id: int) -> None:
        with self._connection() as conn:
            placeholder = _placeholder(conn)
            cursor = conn.execute(
                f"DELETE FROM users WHERE id = {placeholder};",
                (user_id,),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise NotFound("user not found")

    def _get_one(self, column: str, value) -> User:
        with self._connection() as conn:
            placeholder = _placeholder(conn)
            row = conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE {column} = {placeholder};",
                (value,),
            ).fetchone()
            if row is None:
                raise NotFound("user not found")
            return User(
                id=row["id"],
                username=row["username"],
                email=row["email"],
                password_hash=row["password_hash"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )


def _is_postgres(conn) -> bool:
    return "psycopg" in conn.__class__.__module__


def _placeholder(conn) -> str:
    return "%s" if _is_postgres(conn) else "?"
