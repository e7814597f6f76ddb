from __future__ import annotations

import logging

from rocketgraph_installer.logging_utils import ConsoleFormatter, configure_logging


def _record(level, msg):
    return logging.LogRecord("rocketgraph", level, __file__, 1, msg, None, None)


class TestConsoleFormatter:
    def test_plain_labels(self):
        f = ConsoleFormatter(color=False)
        assert f.format(_record(logging.INFO, "Pulling")) == "[INFO] Pulling"
        assert f.format(_record(logging.WARNING, "careful")) == "[WARN] careful"
        assert f.format(_record(logging.ERROR, "boom")) == "[ERROR] boom"

    def test_color_wraps_label_only(self):
        out = ConsoleFormatter(color=True).format(_record(logging.ERROR, "boom"))
        assert out.startswith("\033[0;31m[ERROR]\033[0m")
        assert out.endswith(" boom")


class TestConfigureLogging:
    def test_writes_debug_to_file(self, tmp_path):
        path = tmp_path / "logs" / "install.log"
        assert configure_logging(log_path=str(path), also_console=False) == str(path)
        logging.getLogger("rocketgraph.test").debug("CMD docker ps")
        for h in logging.getLogger().handlers:
            h.flush()
        assert "CMD docker ps" in path.read_text()

    def test_second_call_is_a_no_op(self, tmp_path):
        first = configure_logging(log_path=str(tmp_path / "a.log"), also_console=False)
        count = len(logging.getLogger().handlers)
        assert configure_logging(log_path=str(tmp_path / "b.log"), also_console=False) == first
        assert len(logging.getLogger().handlers) == count

    def test_falls_back_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        chosen = configure_logging(log_path=str(blocker / "install.log"), also_console=False)
        assert chosen == str(tmp_path / "install.log")
