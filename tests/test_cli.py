import tempfile
import unittest
from pathlib import Path

from typer.testing import CliRunner

from nodi.cli import app


def _write(root: Path, rel: str, content: str) -> Path:
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


class TestCli(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        _write(self.root, "a.md", "links to [[b]]")
        _write(self.root, "b.md", "links to [[a]] and [[b]]")

    def tearDown(self):
        self._tmp.cleanup()

    def _index(self, *extra):
        return self.runner.invoke(app, ["index", str(self.root), *extra])

    def test_index_creates_db_under_root(self):
        res = self._index()
        self.assertEqual(res.exit_code, 0, msg=res.output)
        self.assertIn("Documents indexed: 2", res.output)
        self.assertIn("Links written: 3", res.output)
        self.assertTrue((self.root / ".nodi" / "index.sqlite").exists())

    def test_index_custom_db(self):
        db = self.root / "elsewhere" / "links.db"
        res = self._index("--db", str(db))
        self.assertEqual(res.exit_code, 0, msg=res.output)
        self.assertTrue(db.exists())

    def test_index_reports_unresolved_reference(self):
        _write(self.root, "c.md", "[[missing]]")
        res = self._index()
        self.assertEqual(res.exit_code, 1)
        self.assertIn("Indexing failed", res.output)
        self.assertIn("missing", res.output)

    def test_index_strict_mode(self):
        _write(self.root, "c.md", "[[unterminated")
        self.assertEqual(self._index().exit_code, 0)
        self.assertEqual(self._index("--strict").exit_code, 1)

    def test_index_requires_directory(self):
        res = self.runner.invoke(app, ["index", str(self.root / "nope")])
        self.assertNotEqual(res.exit_code, 0)

    def test_query_without_index(self):
        res = self.runner.invoke(app, ["links", str(self.root), "a"])
        self.assertEqual(res.exit_code, 2)

    def test_links_and_backlinks(self):
        self._index()
        res = self.runner.invoke(app, ["links", str(self.root), "b"])
        self.assertEqual(res.exit_code, 0, msg=res.output)
        self.assertIn("a.md", res.output)

        res = self.runner.invoke(app, ["backlinks", str(self.root), "b"])
        self.assertEqual(res.exit_code, 0, msg=res.output)
        self.assertIn("a.md", res.output)
        self.assertIn("b.md", res.output)

    def test_links_use_indexed_extension(self):
        _write(self.root, "notes/c.txt", "see [[d]]")
        _write(self.root, "notes/d.txt", "")
        res = self._index("--extension", ".txt")
        self.assertEqual(res.exit_code, 0, msg=res.output)

        res = self.runner.invoke(app, ["links", str(self.root), "notes/c"])
        self.assertEqual(res.exit_code, 0, msg=res.output)
        self.assertIn("notes/d.txt", res.output)

        res = self.runner.invoke(app, ["backlinks", str(self.root), "d"])
        self.assertEqual(res.exit_code, 0, msg=res.output)
        self.assertIn("notes/c.txt", res.output)

    def test_links_unknown_document(self):
        self._index()
        res = self.runner.invoke(app, ["links", str(self.root), "zzz"])
        self.assertEqual(res.exit_code, 1)

    def test_status(self):
        self._index()
        res = self.runner.invoke(app, ["status", str(self.root)])
        self.assertEqual(res.exit_code, 0, msg=res.output)
        self.assertIn("up to date", res.output)

        _write(self.root, "a.md", "changed")
        res = self.runner.invoke(app, ["status", str(self.root)])
        self.assertEqual(res.exit_code, 1)
        self.assertIn("modified", res.output)

    def test_stats(self):
        self._index()
        res = self.runner.invoke(app, ["stats", str(self.root)])
        self.assertEqual(res.exit_code, 0, msg=res.output)
        self.assertIn("Documents", res.output)
        self.assertIn("Links", res.output)


if __name__ == "__main__":
    unittest.main()
