import io
import os
import shutil
import subprocess
import sys
import tempfile
import textwrap
import unittest
from unittest import mock

from pyslog import ConsoleWriter, Logger, install_exit_hooks

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class TestExcepthook(unittest.TestCase):
    def test_excepthook_routes_to_shutdown(self):
        previous = mock.Mock()
        fake = mock.Mock()
        with mock.patch.object(sys, "excepthook", previous):
            uninstall = install_exit_hooks(fake)
            try:
                error = ValueError("x")
                sys.excepthook(ValueError, error, None)
            finally:
                uninstall()
            self.assertIs(sys.excepthook, previous)

        fake.fatal.assert_called_once_with("未处理的异常", error)
        fake.shutdown.assert_called_once_with("未处理的异常")
        previous.assert_called_once_with(ValueError, error, None)

    def test_keyboard_interrupt_is_not_logged_as_fatal(self):
        previous = mock.Mock()
        fake = mock.Mock()
        with mock.patch.object(sys, "excepthook", previous):
            uninstall = install_exit_hooks(fake)
            try:
                sys.excepthook(KeyboardInterrupt, KeyboardInterrupt(), None)
            finally:
                uninstall()
        fake.fatal.assert_not_called()
        fake.shutdown.assert_called_once()

    def test_logger_uninstalls_hooks_on_shutdown(self):
        previous_hook = sys.excepthook
        logger = Logger("a", "b", {"logStorage": {"txt": False, "json": False}},
                        console=ConsoleWriter(stream=io.StringIO(), color_system=None))
        self.assertIsNot(sys.excepthook, previous_hook)
        logger.shutdown()
        self.assertIs(sys.excepthook, previous_hook)


class TestSignals(unittest.TestCase):
    """信号测试在子进程中运行，避免影响测试进程本身的信号处理。"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def _run(self, body, timeout=15):
        script = textwrap.dedent("""
            import os, signal, sys, time
            from pyslog import Logger, append_to_file

            base = sys.argv[1]
        """) + textwrap.dedent(body)
        env = os.environ.copy()
        env["PYTHONPATH"] = ROOT + os.pathsep + env.get("PYTHONPATH", "")
        env["PYTHONIOENCODING"] = "utf-8"
        try:
            return subprocess.run(
                [sys.executable, "-c", script, self.test_dir],
                capture_output=True, text=True, encoding="utf-8", timeout=timeout, env=env,
            )
        except subprocess.TimeoutExpired:
            self.fail("process did not exit after the signal")

    def _text_log(self):
        with open(os.path.join(self.test_dir, "logs.txt.log"), encoding="utf-8") as f:
            return f.read().splitlines()

    def test_sigterm_drains_buffered_records(self):
        result = self._run("""
            logger = Logger("app", "sig", {
                "show": {"stdoutEnable": False},
                "logStorage": {"path": base, "splitBy": "none", "strategy": "batch", "batch": 10},
            })
            for i in range(3):
                logger.info(f"buffered {i}")
            os.kill(os.getpid(), signal.SIGTERM)
            time.sleep(10)
            print("NOT REACHED")
        """)
        self.assertNotIn("NOT REACHED", result.stdout)
        self.assertEqual(result.returncode, 128 + 15)
        lines = self._text_log()
        self.assertEqual(lines[:3], [f"<app.sig> [INFO] buffered {i}" for i in range(3)])
        self.assertIn("SIGTERM", lines[3])

    def test_sigint_during_file_write_does_not_hang(self):
        result = self._run("""
            sent = []

            def appender(path, text):
                if not sent:
                    sent.append(True)
                    os.kill(os.getpid(), signal.SIGINT)
                    time.sleep(0.5)
                append_to_file(path, text)

            logger = Logger("app", "sig", {
                "show": {"stdoutEnable": False},
                "logStorage": {"path": base, "splitBy": "none", "txt": True, "json": False},
            }, appender=appender)
            logger.info("first")
            time.sleep(10)
            print("NOT REACHED")
        """)
        self.assertNotIn("NOT REACHED", result.stdout)
        self.assertNotEqual(result.returncode, 0)
        self.assertIn("KeyboardInterrupt", result.stderr)
        self.assertTrue(any("SIGINT" in line for line in self._text_log()))


if __name__ == '__main__':
    unittest.main()
