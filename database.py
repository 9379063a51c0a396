"""
database.py — SQLite schema creation and record store operations.

Tables: phases, blocks, phase_start_dates, year_fertilizer_data,
month_fertilizer_data. Uses WAL mode for concurrent read performance.

Writes validate their input first (ValidationError, nothing written), turn
sqlite3.IntegrityError into ConstraintViolation, and raise NotFound when a
delete target is absent. After a successful commit the table name is
published on the optional change channel.
"""

import logging
import os
import sqlite3

from flask import current_app, has_app_context

from date_windows import first_of_month, period_key
from models import Block, DailyApplication, Phase, ProgramStartDate, YearlyApplication
from utils.validators import (
    ValidationError, parse_iso_date, validate_block_selection, validate_daily_entry,
    validate_start_date, validate_yearly_entries
)


logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'fertilizer.db')

YEARLY_TABLE = 'year_fertilizer_data'
DAILY_TABLE = 'month_fertilizer_data'
START_DATE_TABLE = 'phase_start_dates'
BLOCKS_TABLE = 'blocks'
PHASES_TABLE = 'phases'


class StoreError(Exception):
    """Base class for record store failures surfaced to callers."""


class ConstraintViolation(StoreError):
    """The store rejected a write (duplicate key, foreign key, check constraint)."""


class NotFound(StoreError):
    """The record targeted by a delete or update does not exist."""


# ========================================
# Connection Management
# ========================================

def get_db_path():
    """Database path: app config DATABASE, then FERTILIZER_DB_PATH, then the default."""
    if has_app_context() and current_app.config.get('DATABASE'):
        return current_app.config['DATABASE']
    return os.environ.get('FERTILIZER_DB_PATH', DEFAULT_DB_PATH)


def get_db():
    """Get a database connection with WAL mode and foreign keys enabled."""
    db_path = get_db_path()
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """Create all tables and indexes if they don't exist."""
    conn = get_db()
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS phases (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT UNIQUE NOT NULL,
            area REAL,
            trees INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS blocks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            phase_id INTEGER NOT NULL REFERENCES phases(id),
            label TEXT NOT NULL,
            area REAL,
            trees INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(phase_id, label)
        )
    """)

    # One program anchor per phase
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS phase_start_dates (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            phase_id INTEGER UNIQUE NOT NULL REFERENCES phases(id),
            start_date TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # month is always the first day of the month (YYYY-MM-01)
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS year_fertilizer_data (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            phase_id INTEGER NOT NULL REFERENCES phases(id),
            block_id INTEGER NOT NULL REFERENCES blocks(id),
            month TEXT NOT NULL,
            year INTEGER NOT NULL,
            fertilizer_name TEXT NOT NULL CHECK (length(trim(fertilizer_name)) > 0),
            kilogram_amount REAL NOT NULL CHECK (kilogram_amount > 0),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS month_fertilizer_data (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            phase_id INTEGER NOT NULL REFERENCES phases(id),
            block_id INTEGER NOT NULL REFERENCES blocks(id),
            date TEXT NOT NULL,
            name TEXT NOT NULL CHECK (length(trim(name)) > 0),
            bag INTEGER NOT NULL CHECK (bag IN (10, 50)),
            quantity INTEGER NOT NULL CHECK (quantity >= 1),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_year_fertilizer_phase_block_month
        ON year_fertilizer_data(phase_id, block_id, month)
    """)
    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_month_fertilizer_phase_date
        ON month_fertilizer_data(phase_id, date)
    """)

    conn.commit()
    conn.close()


def _publish(channel, table):
    if channel is not None:
        channel.publish(table)


def _delete_by_id(table, entry_id, channel=None):
    conn = get_db()
    try:
        cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (entry_id,))
        if cursor.rowcount == 0:
            conn.rollback()
            logger.warning("Delete from %s: id %s not found", table, entry_id)
            raise NotFound(f"No record {entry_id} in {table}.")
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise ConstraintViolation(str(e))
    finally:
        conn.close()

    logger.info("Deleted %s id=%s", table, entry_id)
    _publish(channel, table)


# ========================================
# Phases and Blocks
# ========================================

def create_phase(name, area=None, trees=None, channel=None):
    name = str(name or '').strip()
    if not name:
        raise ValidationError("Phase name is required.", 'name')

    conn = get_db()
    try:
        cursor = conn.execute(
            "INSERT INTO phases (name, area, trees) VALUES (?, ?, ?)",
            (name, area, trees)
        )
        conn.commit()
        phase_id = cursor.lastrowid
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise ConstraintViolation(str(e))
    finally:
        conn.close()

    logger.info("Created phase %s (id=%s)", name, phase_id)
    _publish(channel, PHASES_TABLE)
    return phase_id


def get_phases():
    conn = get_db()
    rows = conn.execute("SELECT * FROM phases ORDER BY name").fetchall()
    conn.close()
    return [Phase.from_row(r) for r in rows]


def get_phase(phase_id):
    """Retrieve a single phase by ID, or None."""
    conn = get_db()
    row = conn.execute("SELECT * FROM phases WHERE id = ?", (phase_id,)).fetchone()
    conn.close()
    return Phase.from_row(row) if row else None


def create_block(phase_id, label, area=None, trees=None, channel=None):
    label = str(label if label is not None else '').strip()
    if not label:
        raise ValidationError("Block label is required.", 'label')

    conn = get_db()
    try:
        cursor = conn.execute(
            "INSERT INTO blocks (phase_id, label, area, trees) VALUES (?, ?, ?, ?)",
            (phase_id, label, area, trees)
        )
        conn.commit()
        block_id = cursor.lastrowid
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise ConstraintViolation(str(e))
    finally:
        conn.close()

    logger.info("Created block %s in phase %s (id=%s)", label, phase_id, block_id)
    _publish(channel, BLOCKS_TABLE)
    return block_id


def get_blocks(phase_id):
    """Blocks of a phase in storage order (use program_table.sorted_blocks to display)."""
    conn = get_db()
    rows = conn.execute(
        "SELECT * FROM blocks WHERE phase_id = ? ORDER BY id", (phase_id,)
    ).fetchall()
    conn.close()
    return [Block.from_row(r) for r in rows]


def get_block(block_id):
    conn = get_db()
    row = conn.execute("SELECT * FROM blocks WHERE id = ?", (block_id,)).fetchone()
    conn.close()
    return Block.from_row(row) if row else None


def _require_phase_block(phase_id, block_id):
    """Refuse a block that is missing or belongs to another phase."""
    block = get_block(block_id)
    if block is None:
        raise ConstraintViolation(f"Block {block_id} does not exist")
    if block.phase_id != phase_id:
        raise ValidationError(
            f"Block {block.label} does not belong to phase {phase_id}.", 'block_id')
    return block


def delete_block(block_id, channel=None):
    """Delete a block. Fails with ConstraintViolation while applications reference it."""
    _delete_by_id(BLOCKS_TABLE, block_id, channel)


# ========================================
# Program Start Dates
# ========================================

def get_start_date(phase_id):
    conn = get_db()
    row = conn.execute(
        "SELECT * FROM phase_start_dates WHERE phase_id = ?", (phase_id,)
    ).fetchone()
    conn.close()
    return ProgramStartDate.from_row(row) if row else None


def set_start_date(phase_id, start_date, channel=None):
    """
    Create or edit the program start date of a phase.

    Existing yearly entries keep their calendar month; moving the start date
    only changes which program-year column they appear under.

    Returns:
        The stored ProgramStartDate.
    """
    start = validate_start_date(start_date)

    conn = get_db()
    try:
        existing = conn.execute(
            "SELECT * FROM phase_start_dates WHERE phase_id = ?", (phase_id,)
        ).fetchone()
        if existing:
            conn.execute(
                "UPDATE phase_start_dates SET start_date = ? WHERE id = ?",
                (start.isoformat(), existing['id'])
            )
        else:
            conn.execute(
                "INSERT INTO phase_start_dates (phase_id, start_date) VALUES (?, ?)",
                (phase_id, start.isoformat())
            )
        conn.commit()
        row = conn.execute(
            "SELECT * FROM phase_start_dates WHERE phase_id = ?", (phase_id,)
        ).fetchone()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise ConstraintViolation(str(e))
    finally:
        conn.close()

    if existing:
        logger.info("Program start for phase %s moved from %s to %s (entries not re-keyed)",
                    phase_id, existing['start_date'], start.isoformat())
    else:
        logger.info("Program start for phase %s set to %s", phase_id, start.isoformat())
    _publish(channel, START_DATE_TABLE)
    return ProgramStartDate.from_row(row)


# ========================================
# Query helpers
# ========================================

def _build_filter(column_filters, date_column=None, date_range=None):
    clauses = []
    params = []
    for column, value in column_filters:
        if value is not None:
            clauses.append(f"{column} = ?")
            params.append(value)
    if date_range is not None:
        start, end = date_range
        if start is not None:
            clauses.append(f"{date_column} >= ?")
            params.append(parse_iso_date(start).isoformat())
        if end is not None:
            clauses.append(f"{date_column} <= ?")
            params.append(parse_iso_date(end).isoformat())
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ''
    return where, params


# ========================================
# Yearly-granularity entries
# ========================================

def query_yearly(phase_id=None, block_id=None, period=None, date_range=None):
    """
    Yearly program entries matching all given filters, ordered by month then creation.

    Args:
        period: Any date in the program month (matched by period key).
        date_range: (start, end) inclusive bounds on the month, either may be None.
    """
    where, params = _build_filter(
        [('phase_id', phase_id), ('block_id', block_id),
         ('month', period_key(period) if period is not None else None)],
        'month', date_range)
    conn = get_db()
    rows = conn.execute(
        f"SELECT * FROM year_fertilizer_data{where} ORDER BY month, created_at, id", params
    ).fetchall()
    conn.close()
    return [YearlyApplication.from_row(r) for r in rows]


def insert_yearly_entries(phase_id, block_id, period, entries, channel=None):
    """
    Insert a batch of program entries for one block and month.

    All entries are validated before the transaction; either all are stored or none.

    Returns:
        List of new entry IDs.
    """
    block_id = validate_block_selection(block_id)
    cleaned = validate_yearly_entries(entries)
    month = first_of_month(parse_iso_date(period, 'month'))
    _require_phase_block(phase_id, block_id)

    conn = get_db()
    ids = []
    try:
        for name, amount in cleaned:
            cursor = conn.execute(
                """INSERT INTO year_fertilizer_data
                   (phase_id, block_id, month, year, fertilizer_name, kilogram_amount)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (phase_id, block_id, month.isoformat(), month.year, name, amount)
            )
            ids.append(cursor.lastrowid)
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise ConstraintViolation(str(e))
    finally:
        conn.close()

    logger.info("Added %d program entries for block %s, %s", len(ids), block_id, month.isoformat())
    _publish(channel, YEARLY_TABLE)
    return ids


def delete_yearly(entry_id, channel=None):
    _delete_by_id(YEARLY_TABLE, entry_id, channel)


# ========================================
# Daily-granularity entries
# ========================================

def query_daily(phase_id=None, block_id=None, day=None, date_range=None):
    """Daily entries matching all given filters, ordered by date then creation."""
    where, params = _build_filter(
        [('phase_id', phase_id), ('block_id', block_id),
         ('date', parse_iso_date(day).isoformat() if day is not None else None)],
        'date', date_range)
    conn = get_db()
    rows = conn.execute(
        f"SELECT * FROM month_fertilizer_data{where} ORDER BY date, created_at, id", params
    ).fetchall()
    conn.close()
    return [DailyApplication.from_row(r) for r in rows]


def insert_daily(phase_id, block_id, day, worker_name, bag_size, quantity, channel=None):
    """Insert one daily application. Returns the new entry ID."""
    name, block_id, bag_size, quantity = validate_daily_entry(
        worker_name, block_id, bag_size, quantity)
    day = parse_iso_date(day)
    _require_phase_block(phase_id, block_id)

    conn = get_db()
    try:
        cursor = conn.execute(
            """INSERT INTO month_fertilizer_data (phase_id, block_id, date, name, bag, quantity)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (phase_id, block_id, day.isoformat(), name, bag_size, quantity)
        )
        conn.commit()
        entry_id = cursor.lastrowid
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise ConstraintViolation(str(e))
    finally:
        conn.close()

    logger.info("Added daily entry %s: %s x%d bag %dkg on block %s",
                entry_id, name, quantity, bag_size, block_id)
    _publish(channel, DAILY_TABLE)
    return entry_id


def delete_daily(entry_id, channel=None):
    _delete_by_id(DAILY_TABLE, entry_id, channel)
