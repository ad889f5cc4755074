# rendezvous/io/recorder.py
import json
import logging
import os
import sys
from dataclasses import asdict
from typing import IO, Protocol, TypeVar

from rendezvous.io.business_events import BizEvent

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=BizEvent)


class Sink(Protocol):
    def write(self, ev: BizEvent) -> None: ...


class JsonlSink:
    """One JSON object per business event. Accepts an open text stream or a file path (appended to)."""

    def __init__(self, target: IO[str] | str | None = None):
        if isinstance(target, str):
            path = os.path.expandvars(os.path.expanduser(target))
            self.fp = open(path, "a", encoding="utf-8")
            self._owned = True
        else:
            self.fp = target if target is not None else sys.stdout
            self._owned = False

    def write(self, ev: BizEvent) -> None:
        self.fp.write(json.dumps(asdict(ev), default=str) + "\n")

    def close(self) -> None:
        if self._owned:
            self.fp.close()


class MemorySink:
    def __init__(self):
        self.events: list[BizEvent] = []

    def write(self, ev: BizEvent) -> None:
        self.events.append(ev)

    def names(self) -> list[str]:
        return [e.name for e in self.events]

    def of_type(self, cls: type[E]) -> list[E]:
        return [e for e in self.events if isinstance(e, cls)]


class Recorder:
    def __init__(self, *sinks: Sink):
        self.sinks = sinks or (JsonlSink(),)

    def emit(self, ev: BizEvent) -> None:
        for s in self.sinks:
            try:
                s.write(ev)
            except (OSError, TypeError, ValueError):
                logger.exception("recorder sink %s failed on %s", type(s).__name__, ev.name)
