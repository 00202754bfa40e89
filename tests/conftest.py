"""Shared fixtures."""

import sqlite3

import pytest


def make_history_db(path, rows):
    """Write a minimal Chrome History database with a ``urls`` table."""
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("""
        CREATE TABLE urls (
            id INTEGER PRIMARY KEY,
            url LONGVARCHAR,
            title LONGVARCHAR,
            visit_count INTEGER DEFAULT 0 NOT NULL,
            typed_count INTEGER DEFAULT 0 NOT NULL,
            last_visit_time INTEGER NOT NULL,
            hidden INTEGER DEFAULT 0 NOT NULL
        )
    """)
    conn.executemany(
        "INSERT INTO urls (url, title, visit_count, typed_count, last_visit_time) VALUES (?, ?, ?, ?, ?)",
        rows,
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def history_factory(tmp_path):
    def _factory(rows, name="History"):
        return make_history_db(tmp_path / name, rows)

    return _factory
