import logging
import os
import uuid
from datetime import datetime, timezone

import aiosqlite
from dotenv import load_dotenv

from .errors import InvalidStatusError
from .taxonomy import APPROVED, PENDING_REVIEW, REVISION_NEEDED, is_valid_status


load_dotenv()


logger = logging.getLogger(__name__)


DB_PATH = os.getenv(
    "PORTAL_DB_PATH",
    os.path.join(os.path.dirname(__file__), "..", "..", "portal.db"),
)


PROBLEM_FIELDS = [
    "problem_statement_id",
    "title",
    "description",
    "detailed_description",
    "category",
    "theme",
    "department",
]

EVENT_FIELDS = [
    "title",
    "description",
    "event_date",
    "location",
    "event_type",
    "mode",
    "resource_person",
    "problem_statement_deadline",
    "registration_deadline",
    "max_participants",
    "organizer_name",
    "organizer_contact",
    "image_url",
]

TIMESTAMP_FIELDS = ["event_date", "problem_statement_deadline", "registration_deadline"]


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS problem_statements (
        id TEXT PRIMARY KEY,
        problem_statement_id TEXT,
        title TEXT,
        description TEXT,
        detailed_description TEXT,
        category TEXT,
        theme TEXT,
        department TEXT,
        status TEXT,
        created_at TEXT,
        approved_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS team_registrations (
        id TEXT PRIMARY KEY,
        team_name TEXT,
        department TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS departments (
        id TEXT PRIMARY KEY,
        name TEXT UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
        id TEXT PRIMARY KEY,
        title TEXT,
        description TEXT,
        event_date TEXT,
        location TEXT,
        event_type TEXT,
        mode TEXT,
        resource_person TEXT,
        problem_statement_deadline TEXT,
        registration_deadline TEXT,
        max_participants INTEGER,
        organizer_name TEXT,
        organizer_contact TEXT,
        image_url TEXT,
        is_active INTEGER DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS event_registrations (
        id TEXT PRIMARY KEY,
        event_id TEXT,
        user_id TEXT,
        created_at TEXT,
        UNIQUE (event_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS department_messages (
        id TEXT PRIMARY KEY,
        department TEXT,
        sender_id TEXT,
        sender_name TEXT,
        message TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS problem_statement_messages (
        id TEXT PRIMARY KEY,
        problem_statement_id TEXT,
        sender_id TEXT,
        content TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_roles (
        user_id TEXT,
        role TEXT,
        PRIMARY KEY (user_id, role)
    )
    """,
]


def _utc_iso(value) -> str | None:
    """Timestamp as a fixed-width UTC ISO string, so stored values compare correctly as text.

    Naive values are taken to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _now() -> str:
    return _utc_iso(datetime.now(timezone.utc))


def _new_id() -> str:
    return uuid.uuid4().hex


def _event_row(row) -> dict:
    event = dict(row)
    event["is_active"] = bool(event["is_active"])
    return event


async def init_db():
    """Initialize the database and create tables."""
    async with aiosqlite.connect(DB_PATH) as db:
        for statement in SCHEMA:
            await db.execute(statement)
        await db.commit()
    logger.info("Database ready at %s", DB_PATH)


# ============ Problem statements ============

async def list_problems(status: str | None = None, department: str | None = None) -> list[dict]:
    """Problem statements, newest first, optionally filtered by status and department."""
    query = "SELECT * FROM problem_statements"
    clauses, params = [], []
    if status is not None:
        clauses.append("status = ?")
        params.append(status)
    if department is not None:
        clauses.append("department = ?")
        params.append(department)
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY created_at DESC"

    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(query, params) as cursor:
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]


async def get_problem(problem_id: str) -> dict | None:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM problem_statements WHERE id = ?", (problem_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return dict(row) if row else None


async def create_problem(data: dict) -> dict:
    row = {field: data.get(field) for field in PROBLEM_FIELDS}
    row["id"] = _new_id()
    row["status"] = PENDING_REVIEW
    row["created_at"] = _now()
    row["approved_at"] = None

    columns = ", ".join(row)
    placeholders = ", ".join("?" for _ in row)
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            f"INSERT INTO problem_statements ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )
        await db.commit()
    logger.info("Created problem statement %s (%s)", row["id"], row["problem_statement_id"])
    return row


async def update_problem(problem_id: str, data: dict) -> dict | None:
    """Overwrite the editable fields present in data; returns None if the row is gone."""
    changes = {k: v for k, v in data.items() if k in PROBLEM_FIELDS}
    if changes:
        assignments = ", ".join(f"{k} = ?" for k in changes)
        async with aiosqlite.connect(DB_PATH) as db:
            cursor = await db.execute(
                f"UPDATE problem_statements SET {assignments} WHERE id = ?",
                (*changes.values(), problem_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                return None
    return await get_problem(problem_id)


async def set_problem_status(problem_id: str, status: str) -> dict | None:
    """Move a problem through review.

    Approval stamps approved_at; sending it back for revision clears it.
    """
    if not is_valid_status(status):
        raise InvalidStatusError(f"Unknown status: {status}")

    if status == APPROVED:
        query = "UPDATE problem_statements SET status = ?, approved_at = ? WHERE id = ?"
        params = (status, _now(), problem_id)
    elif status == REVISION_NEEDED:
        query = "UPDATE problem_statements SET status = ?, approved_at = NULL WHERE id = ?"
        params = (status, problem_id)
    else:
        query = "UPDATE problem_statements SET status = ? WHERE id = ?"
        params = (status, problem_id)

    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute(query, params)
        await db.commit()
        if cursor.rowcount == 0:
            return None
    logger.info("Problem statement %s marked %s", problem_id, status)
    return await get_problem(problem_id)


async def delete_problem(problem_id: str) -> bool:
    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute(
            "DELETE FROM problem_statements WHERE id = ?", (problem_id,)
        )
        await db.commit()
        deleted = cursor.rowcount > 0
    if deleted:
        logger.info("Deleted problem statement %s", problem_id)
    return deleted


# ============ Departments ============

async def get_problem_departments() -> list[str]:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT department FROM problem_statements WHERE department IS NOT NULL AND department != ''"
        ) as cursor:
            return [row[0] for row in await cursor.fetchall()]


async def get_registration_departments() -> list[str]:
    """Department names teams registered under; the grouping roster."""
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT department FROM team_registrations WHERE department IS NOT NULL AND department != ''"
        ) as cursor:
            return [row[0] for row in await cursor.fetchall()]


async def create_team_registration(team_name: str, department: str) -> dict:
    row = {"id": _new_id(), "team_name": team_name, "department": department, "created_at": _now()}
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            "INSERT INTO team_registrations (id, team_name, department, created_at) VALUES (?, ?, ?, ?)",
            (row["id"], row["team_name"], row["department"], row["created_at"]),
        )
        await db.commit()
    return row


async def list_departments() -> list[dict]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT id, name FROM departments ORDER BY name") as cursor:
            return [dict(row) for row in await cursor.fetchall()]


async def create_department(name: str) -> dict | None:
    """Add a department to the catalog; None when the name already exists."""
    row = {"id": _new_id(), "name": name}
    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute(
            "INSERT OR IGNORE INTO departments (id, name) VALUES (?, ?)",
            (row["id"], row["name"]),
        )
        await db.commit()
        if cursor.rowcount == 0:
            return None
    return row


# ============ Events ============

async def list_active_events() -> list[dict]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM events WHERE is_active = 1 ORDER BY event_date ASC"
        ) as cursor:
            return [_event_row(row) for row in await cursor.fetchall()]


async def get_event(event_id: str) -> dict | None:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM events WHERE id = ?", (event_id,)) as cursor:
            row = await cursor.fetchone()
            return _event_row(row) if row else None


async def create_event(data: dict) -> dict:
    row = {field: data.get(field) for field in EVENT_FIELDS}
    row["id"] = _new_id()
    for field in TIMESTAMP_FIELDS:
        row[field] = _utc_iso(row[field])
    row["is_active"] = 1 if data.get("is_active", True) else 0

    columns = ", ".join(row)
    placeholders = ", ".join("?" for _ in row)
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            f"INSERT INTO events ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )
        await db.commit()
    row["is_active"] = bool(row["is_active"])
    return row


async def has_open_problem_deadline(now=None) -> bool:
    """True if some event still accepts problem statements at `now` (datetime or ISO string)."""
    now = _utc_iso(now) or _now()
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT id FROM events WHERE problem_statement_deadline > ? LIMIT 1", (now,)
        ) as cursor:
            return await cursor.fetchone() is not None


async def is_user_registered(event_id: str, user_id: str) -> bool:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT id FROM event_registrations WHERE event_id = ? AND user_id = ?",
            (event_id, user_id),
        ) as cursor:
            return await cursor.fetchone() is not None


async def register_for_event(event_id: str, user_id: str) -> bool:
    """Register a user; False if they were already registered."""
    async with aiosqlite.connect(DB_PATH) as db:
        cursor = await db.execute(
            "INSERT OR IGNORE INTO event_registrations (id, event_id, user_id, created_at) VALUES (?, ?, ?, ?)",
            (_new_id(), event_id, user_id, _now()),
        )
        await db.commit()
        return cursor.rowcount > 0


# ============ Messages ============

async def list_department_messages(department: str) -> list[dict]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM department_messages WHERE department = ? ORDER BY created_at ASC",
            (department,),
        ) as cursor:
            return [dict(row) for row in await cursor.fetchall()]


async def create_department_message(department: str, message: str,
                                    sender_id: str | None = None,
                                    sender_name: str | None = None) -> dict:
    row = {
        "id": _new_id(),
        "department": department,
        "sender_id": sender_id,
        "sender_name": sender_name,
        "message": message,
        "created_at": _now(),
    }
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """INSERT INTO department_messages
               (id, department, sender_id, sender_name, message, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            tuple(row.values()),
        )
        await db.commit()
    return row


async def list_problem_messages(problem_id: str) -> list[dict]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM problem_statement_messages WHERE problem_statement_id = ? ORDER BY created_at ASC",
            (problem_id,),
        ) as cursor:
            return [dict(row) for row in await cursor.fetchall()]


async def create_problem_message(problem_id: str, sender_id: str, content: str) -> dict:
    row = {
        "id": _new_id(),
        "problem_statement_id": problem_id,
        "sender_id": sender_id,
        "content": content,
        "created_at": _now(),
    }
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """INSERT INTO problem_statement_messages
               (id, problem_statement_id, sender_id, content, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            tuple(row.values()),
        )
        await db.commit()
    return row


# ============ Roles ============

async def get_user_roles(user_id: str) -> list[str]:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT role FROM user_roles WHERE user_id = ?", (user_id,)
        ) as cursor:
            return [row[0] for row in await cursor.fetchall()]


async def grant_role(user_id: str, role: str):
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            "INSERT OR IGNORE INTO user_roles (user_id, role) VALUES (?, ?)",
            (user_id, role),
        )
        await db.commit()
