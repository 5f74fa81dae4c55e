"""
Logging setup for the sidecar.

Secret values must never reach a log line. Call sites only log keys, ids and counts;
the redaction filter is the backstop for messages that embed KEY=value text anyway.
"""
import logging
import re
import sys


class SecretRedactionFilter(logging.Filter):
    PATTERNS = [
        (re.compile(r"\b([A-Z][A-Z0-9_]*=)(\"[^\"]*\"|'[^']*'|\S+)"), r"\1***REDACTED***"),
        (re.compile(r"(value[\"']?\s*[:=]\s*[\"']?)[^\s,\"'}]+", re.IGNORECASE), r"\1***REDACTED***"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        if isinstance(record.msg, str):
            for pattern, replacement in self.PATTERNS:
                record.msg = pattern.sub(replacement, record.msg)
        return True


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(level: str = "INFO") -> logging.Logger:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(TextFormatter())
    handler.addFilter(SecretRedactionFilter())
    root.addHandler(handler)

    # uvicorn access logs carry query strings (search terms), keep them quiet
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return root
