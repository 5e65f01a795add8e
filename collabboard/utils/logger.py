"""
Logging Utility.

JSON-line event logging for the document change feed and the realtime
fan-out, plus the process-wide logging setup used at startup.
"""

import json
import logging
import os
import sys
from datetime import datetime

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class EventLogger:
    """
    Emits one JSON object per event.

    Every record carries the event name, the emitting component and a UTC
    timestamp; keyword arguments become extra keys of the object.
    """

    def __init__(self, component: str):
        self.component = component
        self.logger = logging.getLogger(component)

    def event(self, name: str, level: int = logging.DEBUG, **fields):
        if not self.logger.isEnabledFor(level):
            return
        record = {
            "event": name,
            "component": self.component,
            "timestamp": datetime.utcnow().isoformat(),
        }
        record.update(fields)
        self.logger.log(level, json.dumps(record, default=str))

    def document_changed(self, path: str, doc_id: str, action: str, subscribers: int):
        self.event("document_changed", path=path, doc_id=doc_id, action=action, subscribers=subscribers)

    def subscription_opened(self, path: str, filters):
        self.event("subscription_opened", path=path, filters=[f"{f.field} {f.op} {f.value!r}" for f in filters])

    def subscription_closed(self, path: str, remaining: int):
        self.event("subscription_closed", path=path, remaining=remaining)

    def stream_opened(self, channel: str, connections: int):
        self.event("stream_opened", logging.INFO, channel=channel, connections=connections)

    def stream_closed(self, channel: str, connections: int):
        self.event("stream_closed", logging.INFO, channel=channel, connections=connections)


def configure_logging(level=None) -> None:
    """Attach a stdout handler to the root logger once; level from LOG_LEVEL by default."""
    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level or os.environ.get("LOG_LEVEL", "INFO").upper())


def get_logger(component: str) -> EventLogger:
    """Event logger for one component, e.g. ``collabboard.change-feed``."""
    return EventLogger(component)
