"""Turns operator interrupt signals into a cancellation token"""
import logging
import signal

from core.cancellation import CancellationToken

LOG = logging.getLogger("padbridge.shutdown")

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownCoordinator:
    """Installs signal handlers that cancel `token` on the first signal.

    Repeated signals are logged and ignored; the loops observing the token
    are responsible for releasing resources, and they do so once.
    Handlers must be installed from the main thread.
    """

    def __init__(self, token: CancellationToken, signals=DEFAULT_SIGNALS):
        self.token = token
        self._signals = tuple(signals)
        self._previous = {}

    def handle(self, signum, _frame=None):
        if self.token.cancel():
            LOG.info("shutdown requested (%s)", signal.Signals(signum).name)
        else:
            LOG.warning("shutdown already in progress, ignoring %s", signal.Signals(signum).name)

    def install(self):
        for sig in self._signals:
            self._previous[sig] = signal.signal(sig, self.handle)
        return self

    def uninstall(self):
        for sig, previous in self._previous.items():
            signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()

    def __enter__(self):
        return self.install()

    def __exit__(self, exc_type, exc, tb):
        self.uninstall()
        return False
