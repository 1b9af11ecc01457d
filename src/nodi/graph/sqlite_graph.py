from __future__ import annotations

import sqlite3


def init_graph(conn: sqlite3.Connection) -> None:
    # Duplicate (src, dst) pairs are allowed: one row per reference occurrence.
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS links (
          link_id INTEGER PRIMARY KEY,
          src_id INTEGER NOT NULL REFERENCES documents(doc_id) ON DELETE CASCADE,
          dst_id INTEGER NOT NULL REFERENCES documents(doc_id) ON DELETE CASCADE,
          reference TEXT
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_links_src ON links(src_id);")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_links_dst ON links(dst_id);")

    conn.commit()


def clear_graph(conn: sqlite3.Connection) -> None:
    conn.execute("DELETE FROM links;")


def insert_link(conn: sqlite3.Connection, *, src_id: int, dst_id: int, reference: str | None = None) -> int:
    cur = conn.execute(
        "INSERT INTO links(src_id, dst_id, reference) VALUES(?, ?, ?)",
        (int(src_id), int(dst_id), reference),
    )
    return int(cur.lastrowid)


def get_outgoing(conn: sqlite3.Connection, doc_id: int):
    return conn.execute(
        """
        SELECT l.link_id, l.reference, d.doc_id, d.path
        FROM links l
        JOIN documents d ON d.doc_id = l.dst_id
        WHERE l.src_id = ?
        ORDER BY l.link_id
        """,
        (int(doc_id),),
    ).fetchall()


def get_incoming(conn: sqlite3.Connection, doc_id: int):
    return conn.execute(
        """
        SELECT l.link_id, l.reference, d.doc_id, d.path
        FROM links l
        JOIN documents d ON d.doc_id = l.src_id
        WHERE l.dst_id = ?
        ORDER BY d.path, l.link_id
        """,
        (int(doc_id),),
    ).fetchall()


def get_all_links(conn: sqlite3.Connection):
    return conn.execute(
        """
        SELECT s.path AS src_path, d.path AS dst_path, l.reference
        FROM links l
        JOIN documents s ON s.doc_id = l.src_id
        JOIN documents d ON d.doc_id = l.dst_id
        ORDER BY s.path, l.link_id
        """
    ).fetchall()


def count_links(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) AS n FROM links").fetchone()["n"])
