# recanon/core/__init__.py
# Event log and integrity primitives.

from recanon.core.integrity_layer import IntegrityLayer
from recanon.core.logging_layer import Event, EventFilter, EventLogger, LoggingError
