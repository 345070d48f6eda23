import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from typer.testing import CliRunner

from abemadl.cli import app

from tests.fakes import FakeBrowser, FakeSite, browser_factory, episode_node

A = "https://site/video/title/A"


class TestCli(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.urls_path = self.tmp / "urls.json"
        self.log_path = self.tmp / "downloads.json"
        self.env = {
            "ABEMADL_CONFIG": str(self.tmp / "missing.yaml"),
            "ABEMADL_URLS": str(self.urls_path),
            "ABEMADL_LOG_PATH": str(self.log_path),
            "ABEMADL_SCROLL_INTERVAL": "0",
        }
        patcher = mock.patch("abemadl.cli.setup_logging")
        patcher.start()
        self.addCleanup(patcher.stop)
        self.runner = CliRunner()

    def tearDown(self):
        self._tmp.cleanup()

    def invoke(self, *args):
        return self.runner.invoke(app, list(args), env=self.env)

    def test_add_prepends(self):
        self.urls_path.write_text(json.dumps(["Y"]))
        result = self.invoke("add", "https://site/video/X")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(self.urls_path.read_text()), ["https://site/video/X", "Y"])

    def test_urls_lists_tracked(self):
        self.urls_path.write_text(json.dumps(["X", "Y"]))
        result = self.invoke("urls")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("1. X", result.output)
        self.assertIn("2. Y", result.output)

    def test_crawl_dry_run(self):
        self.urls_path.write_text(json.dumps([A]))
        browser = FakeBrowser({A: FakeSite(title="A", episodes=[episode_node("https://site/e/1")])})
        with mock.patch("abemadl.cli.playwright_factory", return_value=browser_factory(browser)):
            result = self.invoke("crawl", "--dry-run", "--dst", str(self.tmp / "v"))
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Download targets (1)", result.output)
        self.assertEqual(json.loads(self.log_path.read_text()), {})
        self.assertFalse((self.tmp / "v").exists())

    def test_crawl_empty_store_succeeds(self):
        result = self.invoke("crawl", "--dst", str(self.tmp / "v"))
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(self.log_path.read_text()), {})

    def test_crawl_aborts_with_nonzero_exit(self):
        self.urls_path.write_text(json.dumps([A]))
        with mock.patch("abemadl.cli.playwright_factory", return_value=browser_factory(FakeBrowser({}))):
            result = self.invoke("crawl")
        self.assertEqual(result.exit_code, 1)
        self.assertEqual(json.loads(self.log_path.read_text()), {})

    def test_malformed_url_store_exits_nonzero(self):
        self.urls_path.write_text('{"not": "a list"}')
        result = self.invoke("crawl")
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
