"""Cooperative cancellation for detection and build passes."""

import threading
from typing import Optional

from repowatcher.errors import PassCancelledError


def raise_if_cancelled(cancel: Optional[threading.Event]) -> None:
    """Raise PassCancelledError if the cancellation signal has fired."""
    if cancel is not None and cancel.is_set():
        raise PassCancelledError("pass cancelled")
