# pyslog/hooks.py

"""
进程退出钩子。正常退出、SIGINT/SIGTERM 以及未处理的异常都会调用同一个
`logger.shutdown()`，由它保证只执行一次。

信号处理器运行在被打断的主线程上，此时该线程可能正持有 Sink 的锁，
所以处理器本身不做任何写出: 它只记录关闭原因并抛出 KeyboardInterrupt/SystemExit，
异常展开时锁会被释放，随后由 excepthook 或 atexit 执行 `shutdown()`。
"""

import atexit
import logging
import signal
import sys
import threading

_log = logging.getLogger(__name__)

_SIGNALS = tuple(getattr(signal, name) for name in ("SIGINT", "SIGTERM") if hasattr(signal, name))


def install_exit_hooks(logger):
    """
    为 logger 注册退出钩子。

    信号处理器只能在主线程中注册，在其他线程中创建的 Logger 只注册 atexit 和 excepthook。

    Returns:
        callable: 调用后撤销所有钩子。
    """
    pending = {}

    def on_exit():
        logger.shutdown(pending.get("reason", "进程退出"))

    previous_signals = {}

    def on_signal(signum, frame):
        pending["reason"] = f"收到信号 {signal.Signals(signum).name}"
        previous = previous_signals.get(signum)
        if callable(previous):
            previous(signum, frame)
        elif previous != signal.SIG_IGN:
            raise SystemExit(128 + signum)

    previous_excepthook = sys.excepthook

    def on_exception(exc_type, exc_value, exc_tb):
        if not issubclass(exc_type, KeyboardInterrupt):
            logger.fatal("未处理的异常", exc_value)
        logger.shutdown(pending.get("reason", "未处理的异常"))
        previous_excepthook(exc_type, exc_value, exc_tb)

    atexit.register(on_exit)
    sys.excepthook = on_exception
    if threading.current_thread() is threading.main_thread():
        for signum in _SIGNALS:
            try:
                previous_signals[signum] = signal.getsignal(signum)
                signal.signal(signum, on_signal)
            except (OSError, ValueError) as e:
                previous_signals.pop(signum, None)
                _log.debug("无法注册信号 %s: %s", signum, e)

    def uninstall():
        atexit.unregister(on_exit)
        if sys.excepthook is on_exception:
            sys.excepthook = previous_excepthook
        if threading.current_thread() is not threading.main_thread():
            return
        for signum, previous in previous_signals.items():
            if signal.getsignal(signum) is on_signal:
                signal.signal(signum, previous if previous is not None else signal.SIG_DFL)

    return uninstall
