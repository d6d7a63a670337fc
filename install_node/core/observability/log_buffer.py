"""
Buffered log sink — hold a background task's log records, replay later.

The package-manager fetch runs in the background while the runtime
fetch logs live.  Its records are held here and emitted as one block
after the join, so the build log reads "foreground progress first,
background block after" instead of two interleaved streams.

Usage::

    sink = BufferedLogSink(task_logger).attach()
    ...                       # background work logs to task_logger
    sink.replay()             # after join: emit everything, in order
"""

from __future__ import annotations

import logging


class BufferedLogSink(logging.Handler):
    """Capture every record sent to one logger until replayed.

    While attached, the logger's propagation is switched off so the
    records reach nothing but this buffer.
    """

    def __init__(self, target: logging.Logger) -> None:
        super().__init__(level=logging.NOTSET)
        self.target = target
        self.records: list[logging.LogRecord] = []
        self._attached = False
        self._saved_propagate = target.propagate

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> BufferedLogSink:
        """Start buffering.  Returns ``self`` for chaining."""
        if not self._attached:
            self._saved_propagate = self.target.propagate
            self.target.addHandler(self)
            self.target.propagate = False
            self._attached = True
        return self

    def detach(self) -> None:
        """Stop buffering and restore the logger's propagation."""
        if self._attached:
            self.target.removeHandler(self)
            self.target.propagate = self._saved_propagate
            self._attached = False

    def emit(self, record: logging.LogRecord) -> None:
        # Handler.handle() already holds self.lock here
        self.records.append(record)

    def replay(self) -> int:
        """Detach, then re-emit buffered records through the logger.

        Returns:
            Number of records replayed.
        """
        self.detach()
        with self.lock:
            pending, self.records = self.records, []
        for record in pending:
            self.target.handle(record)
        return len(pending)
