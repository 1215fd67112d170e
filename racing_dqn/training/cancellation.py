# Cooperative cancellation

import logging
import signal
import threading

logger = logging.getLogger(__name__)


class CancellationToken:
    """Flag checked by the training loop at every step boundary."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def install_sigint_handler(token: CancellationToken):
    """Route SIGINT to the token instead of raising KeyboardInterrupt.
    
    Returns:
        The previous handler, for restoring with signal.signal
    """
    def handler(signum, frame):
        if not token.cancelled:
            logger.warning("Interrupt received, finishing current step and saving final model")
        token.cancel()

    return signal.signal(signal.SIGINT, handler)
