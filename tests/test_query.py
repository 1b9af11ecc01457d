import tempfile
import unittest
from pathlib import Path

from nodi.errors import ResolutionAmbiguous, ResolutionNotFound
from nodi.graph.build import build_index
from nodi.graph.query import document_status, find_document, links_from, links_to
from nodi.index import sqlite_store


def _write(root: Path, rel: str, content: str) -> Path:
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


class TestGraphQuery(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        _write(self.root, "index.md", "[[projects/alpha]] [[projects/beta]] [[inbox]]")
        _write(self.root, "inbox.md", "todo: [[projects/alpha]]")
        _write(self.root, "projects/alpha.md", "parent [[index]]")
        _write(self.root, "projects/beta.md", "")
        _write(self.root, "archive/beta.md", "")

        self.conn = sqlite_store.connect(":memory:")
        build_index(conn=self.conn, root=self.root)

    def tearDown(self):
        self.conn.close()
        self._tmp.cleanup()

    def test_find_by_name_or_path(self):
        self.assertEqual(find_document(self.conn, "inbox").path, "inbox.md")
        self.assertEqual(find_document(self.conn, "projects/alpha").path, "projects/alpha.md")
        self.assertEqual(find_document(self.conn, "archive/beta.md").path, "archive/beta.md")

    def test_find_errors(self):
        with self.assertRaises(ResolutionNotFound):
            find_document(self.conn, "gamma")
        with self.assertRaises(ResolutionAmbiguous):
            find_document(self.conn, "beta")

    def test_links_from(self):
        res = links_from(self.conn, "index")
        self.assertEqual(res["document"].path, "index.md")
        self.assertEqual(
            [link["path"] for link in res["links"]],
            ["projects/alpha.md", "projects/beta.md", "inbox.md"],
        )

    def test_links_to(self):
        res = links_to(self.conn, "projects/alpha")
        self.assertEqual([link["path"] for link in res["links"]], ["inbox.md", "index.md"])
        self.assertEqual(links_to(self.conn, "archive/beta")["links"], [])

    def test_find_uses_indexed_extension(self):
        _write(self.root, "journal/today.txt", "[[journal/yesterday]]")
        _write(self.root, "journal/yesterday.txt", "")
        build_index(conn=self.conn, root=self.root, extension="txt")

        self.assertEqual(find_document(self.conn, "today").path, "journal/today.txt")
        self.assertEqual(links_from(self.conn, "today")["links"][0]["path"], "journal/yesterday.txt")
        with self.assertRaises(ResolutionNotFound):
            find_document(self.conn, "inbox")
        with self.assertRaises(ResolutionNotFound):
            find_document(self.conn, "today", extension=".md")


class TestDocumentStatus(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        _write(self.root, "a.md", "[[b]]")
        _write(self.root, "b.md", "plain")
        _write(self.root, "c.md", "plain")

        self.conn = sqlite_store.connect(":memory:")
        build_index(conn=self.conn, root=self.root, hash_name="sha1")

    def tearDown(self):
        self.conn.close()
        self._tmp.cleanup()

    def test_clean_after_rebuild(self):
        st = document_status(self.conn, self.root)
        self.assertTrue(st.is_clean)
        self.assertEqual(st.unchanged, ["a.md", "b.md", "c.md"])

    def test_detects_changes(self):
        _write(self.root, "b.md", "edited")
        (self.root / "c.md").unlink()
        _write(self.root, "new/d.md", "fresh")

        st = document_status(self.conn, self.root)
        self.assertFalse(st.is_clean)
        self.assertEqual(st.modified, ["b.md"])
        self.assertEqual(st.deleted, ["c.md"])
        self.assertEqual(st.added, ["new/d.md"])
        self.assertEqual(st.unchanged, ["a.md"])


if __name__ == "__main__":
    unittest.main()
