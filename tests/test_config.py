import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from typer.testing import CliRunner

from abemadl.cli import app
from abemadl.config import Config, load_config
from abemadl.errors import StorageError


def _clean_env(**extra):
    env = {k: v for k, v in os.environ.items() if not k.startswith("ABEMADL_")}
    env.update(extra)
    return mock.patch.dict(os.environ, env, clear=True)


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.yaml_path = self.tmp / "config.yaml"

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_file_gives_defaults(self):
        with _clean_env():
            cfg = load_config(self.tmp / "absent.yaml")
        self.assertEqual(cfg, Config())

    def test_yaml_values_applied(self):
        self.yaml_path.write_text(
            "max_concurrency: 4\n"
            "download-dir: /srv/videos\n"
            "scroll_interval_seconds: 1.5\n"
            "unknown_key: ignored\n"
        )
        with _clean_env():
            cfg = load_config(self.yaml_path)
        self.assertEqual(cfg.max_concurrency, 4)
        self.assertEqual(cfg.download_dir, "/srv/videos")
        self.assertEqual(cfg.scroll_interval_seconds, 1.5)
        self.assertEqual(cfg.download_attempts, 1)

    def test_env_overrides_yaml_with_type_coercion(self):
        self.yaml_path.write_text("max_concurrency: 4\ndownload_dir: /srv/videos\n")
        with _clean_env(
            ABEMADL_MAX_CONCURRENCY="2",
            ABEMADL_SCROLL_INTERVAL="0.25",
            ABEMADL_DST="/mnt/other",
        ):
            cfg = load_config(self.yaml_path)
        self.assertEqual(cfg.max_concurrency, 2)
        self.assertEqual(cfg.scroll_interval_seconds, 0.25)
        self.assertEqual(cfg.download_dir, "/mnt/other")

    def test_config_path_from_env(self):
        self.yaml_path.write_text("download_attempts: 3\n")
        with _clean_env(ABEMADL_CONFIG=str(self.yaml_path)):
            cfg = load_config()
        self.assertEqual(cfg.download_attempts, 3)

    def test_yaml_list_raises_storage_error(self):
        self.yaml_path.write_text("- a\n- b\n")
        with _clean_env(), self.assertRaises(StorageError) as cm:
            load_config(self.yaml_path)
        self.assertEqual(cm.exception.path, self.yaml_path)

    def test_unparsable_yaml_raises_storage_error(self):
        self.yaml_path.write_text("max_concurrency: [1, 2\n")
        with _clean_env(), self.assertRaises(StorageError):
            load_config(self.yaml_path)


class TestCliPrecedence(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        yaml_path = self.tmp / "config.yaml"
        yaml_path.write_text("max_concurrency: 4\ndownload_dir: /srv/videos\ndownload_attempts: 2\n")
        self.env = {
            "ABEMADL_CONFIG": str(yaml_path),
            "ABEMADL_URLS": str(self.tmp / "urls.json"),
            "ABEMADL_LOG_PATH": str(self.tmp / "downloads.json"),
            "ABEMADL_MAX_CONCURRENCY": "2",
        }
        for target in ("abemadl.cli.setup_logging", "abemadl.cli.CrawlRun"):
            patcher = mock.patch(target)
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self):
        self._tmp.cleanup()

    def run_kwargs(self, *args):
        from abemadl import cli
        with _clean_env():
            result = CliRunner().invoke(app, ["crawl", *args], env=self.env)
        self.assertEqual(result.exit_code, 0, result.output)
        return cli.CrawlRun.call_args.kwargs

    def test_env_beats_yaml(self):
        kwargs = self.run_kwargs()
        self.assertEqual(kwargs["max_concurrency"], 2)
        self.assertEqual(kwargs["dst"], "/srv/videos")
        self.assertEqual(kwargs["policy"].attempts, 2)

    def test_cli_option_beats_env(self):
        kwargs = self.run_kwargs("--max-concurrency", "7", "--dst", "/tmp/here")
        self.assertEqual(kwargs["max_concurrency"], 7)
        self.assertEqual(kwargs["dst"], "/tmp/here")

    def test_cli_zero_means_unbounded_even_if_env_sets_limit(self):
        kwargs = self.run_kwargs("--max-concurrency", "0")
        self.assertEqual(kwargs["max_concurrency"], 0)


if __name__ == "__main__":
    unittest.main()
