"""Structured logging and pipeline events.

Every stage transition in the pipeline produces one ``PipelineEvent``.
The default hook writes it through ``logging`` with the event fields as
record extras, which ``JSONFormatter`` lifts into the JSON line.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger("goldies.events")

EXTRA_FIELDS = (
    "event", "stage", "identity_kind", "address", "error_code", "elapsed_ms",
)


@dataclass(frozen=True)
class PipelineEvent:
    name: str  # e.g. "resolution.succeeded"
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def stage(self) -> str:
        return self.name.split(".", 1)[0]

    @property
    def failed(self) -> bool:
        return self.name.endswith(".failed") or bool(self.data.get("error"))


EventHook = Callable[[PipelineEvent], None]


def log_event(event: PipelineEvent) -> None:
    level = logging.WARNING if event.failed else logging.INFO
    extra = {"event": event.name, "stage": event.stage}
    extra.update({k: v for k, v in event.data.items() if k in EXTRA_FIELDS})
    details = " ".join(f"{k}={v}" for k, v in event.data.items())
    logger.log(level, f"{event.name} {details}".strip(), extra=extra)


class JSONFormatter(logging.Formatter):
    """Format logs as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "text"):
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # httpx is chatty under python-telegram-bot polling
    logging.getLogger("httpx").setLevel(logging.WARNING)
