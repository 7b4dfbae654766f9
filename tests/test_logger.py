"""ロギング設定のテスト。"""

import logging

from cppaudit.utils.logger import ProgressLogger, get_log_filename, setup_logging


class TestSetupLogging:
    """setup_loggingのテスト。"""

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        root = setup_logging(level="debug", log_file=str(log_file))
        try:
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 2
            assert log_file.parent.exists()
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers.clear()
            root.setLevel(logging.WARNING)

    def test_log_filename(self):
        name = get_log_filename()
        assert name.startswith("cppaudit_")
        assert name.endswith(".log")


class TestProgressLogger:
    """ProgressLoggerのテスト。"""

    def test_messages(self, caplog):
        logger = logging.getLogger("test.progress")
        progress = ProgressLogger(2, logger)

        with caplog.at_level(logging.INFO, logger="test.progress"):
            progress.update("3 file(s)")
            progress.update()
            progress.complete("Done")

        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "Batch 1/2 - 3 file(s)"
        assert messages[1] == "Batch 2/2"
        assert messages[2].startswith("Done: 2/2 processed in ")
