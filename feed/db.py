"""Database engine and statements for the users/userprofile/employees aggregate."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable

from sqlalchemy import Column, ForeignKey, Integer, MetaData, SmallInteger, String, Table, create_engine, event, insert, select, update
from sqlalchemy.engine import Connection, Engine


_engine: Engine | None = None
_tables_lock = Lock()
_tables_cache: dict[str | None, "FeedTables"] = {}


def set_engine(engine: Engine) -> None:
    """Set the global engine (called once from host initialization)."""
    global _engine
    _engine = engine


def get_engine() -> Engine:
    """Return the global engine. Raises RuntimeError if not set."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized")
    return _engine


def apply_query_timeout(engine: Engine, timeout: int) -> Callable[..., None]:
    """Set the per-statement timeout on every new pyodbc connection (the connect arg is login only)."""

    @event.listens_for(engine, "connect")
    def _set_query_timeout(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.timeout = timeout

    return _set_query_timeout


def build_engine(database_url: str, timeout: int = 30) -> Engine:
    """Create the pooled engine; the timeout bounds both login and each statement on pyodbc."""
    if database_url.startswith(("mssql+", "sqlite")):
        connect_args = {"timeout": timeout}
    else:
        connect_args = {"connect_timeout": timeout}
    engine = create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    if engine.dialect.driver == "pyodbc":
        apply_query_timeout(engine, timeout)
    return engine


@dataclass(frozen=True)
class FeedTables:
    metadata: MetaData
    users: Table
    userprofile: Table
    employees: Table


def _define_tables(schema: str | None) -> FeedTables:
    metadata = MetaData(schema=schema)
    users = Table(
        "users",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("firstname", String(450)),
        Column("lastname", String(450)),
        Column("username", String(450)),
        Column("email", String(450)),
        Column("role", String(50)),
        Column("hashedpassword", String(255)),
        Column("employeeid", String(450), index=True),
        Column("fullname", String(900)),
        Column("employee", SmallInteger),
    )
    userprofile = Table(
        "userprofile",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("userid", Integer, ForeignKey(users.c.id), nullable=False),
        Column("phone", String(100)),
        Column("email", String(450)),
        Column("employeeid", String(450)),
    )
    employees = Table(
        "employees",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("userid", Integer, ForeignKey(users.c.id), nullable=False),
        Column("employeeid", String(450)),
        Column("fullname", String(900)),
        Column("employeeEmail", String(450)),
        Column("employeetenure", String(450)),
        Column("employeeidasint", Integer),
    )
    return FeedTables(metadata=metadata, users=users, userprofile=userprofile, employees=employees)


def feed_tables(schema: str | None = "dbo") -> FeedTables:
    """Return the table definitions for a schema (None for the default schema)."""
    key = schema or None
    with _tables_lock:
        tables = _tables_cache.get(key)
        if tables is None:
            tables = _define_tables(key)
            _tables_cache[key] = tables
        return tables


def find_user_id(conn: Connection, tables: FeedTables, employee_id: str) -> Any | None:
    """Return the id of the first user with this employee identifier, or None."""
    stmt = select(tables.users.c.id).where(tables.users.c.employeeid == employee_id)
    return conn.execute(stmt).scalars().first()


def update_aggregate(conn: Connection, tables: FeedTables, user_id: Any, user: dict[str, Any], profile: dict[str, Any], employee: dict[str, Any]) -> None:
    """Update the three rows of an existing aggregate by its identity key."""
    conn.execute(update(tables.users).where(tables.users.c.id == user_id).values(**user))
    conn.execute(update(tables.userprofile).where(tables.userprofile.c.userid == user_id).values(**profile))
    conn.execute(update(tables.employees).where(tables.employees.c.userid == user_id).values(**employee))


def insert_aggregate(conn: Connection, tables: FeedTables, user: dict[str, Any], profile: dict[str, Any], employee: dict[str, Any]) -> Any:
    """Insert users first, then userprofile and employees referencing the new id. Returns the id."""
    result = conn.execute(insert(tables.users).values(**user))
    user_id = result.inserted_primary_key[0]
    conn.execute(insert(tables.userprofile).values(userid=user_id, **profile))
    conn.execute(insert(tables.employees).values(userid=user_id, **employee))
    return user_id
