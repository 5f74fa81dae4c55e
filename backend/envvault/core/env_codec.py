import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

logger = logging.getLogger(__name__)

QUOTES = ('"', "'")
EXPORT_PREFIX = "export "
# Characters a sourcing shell would expand or interpret outside single quotes
SHELL_ACTIVE = set("$`\\;&|<>()!~\"")


@dataclass
class DecodeResult:
    pairs: List[Tuple[str, str]] = field(default_factory=list)
    skipped: int = 0


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] in QUOTES and value[-1] == value[0]:
        return value[1:-1]
    return value


def decode_line(line: str) -> Tuple[str, str] | None:
    """
    Parse one non-comment line. Returns None when the line is not KEY=VALUE.
    The value after the first '=' is literal apart from one layer of matched quotes.
    """
    name, sep, value = line.partition("=")
    if not sep:
        return None
    name = name.strip()
    if name.startswith(EXPORT_PREFIX):
        name = name[len(EXPORT_PREFIX):].strip()
    if not name:
        return None
    return name, _strip_quotes(value)


def decode(text: str) -> DecodeResult:
    result = DecodeResult()
    for raw in text.split("\n"):
        raw = raw.removesuffix("\r")
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue
        pair = decode_line(raw)
        if pair is None:
            result.skipped += 1
            continue
        result.pairs.append(pair)
    return result


def _needs_quotes(value: str) -> bool:
    if "=" in value:
        return True
    if any(ch.isspace() for ch in value):
        return True
    # A bare value that opens with a quote would lose it on decode
    return value[:1] in QUOTES


def encode_value(value: str) -> str:
    """
    Values the shell would interpret go in single quotes so sourcing ~/.envvault
    runs nothing. A value holding both a single quote and such characters cannot be
    made inert without escapes, which decode does not process; it keeps the plain
    quoting rule and stays unsafe to source.
    """
    if "'" not in value and any(ch in SHELL_ACTIVE for ch in value):
        return f"'{value}'"
    return f'"{value}"' if _needs_quotes(value) else value


def rewritten_by_decode(key: str) -> bool:
    return key != key.strip() or key.startswith(EXPORT_PREFIX) or key.startswith("#")


def encode(pairs: Iterable[Tuple[str, str]]) -> str:
    lines = []
    for key, value in pairs:
        if rewritten_by_decode(key):
            # Still emitted; re-importing it creates a record under the rewritten key
            logger.warning("Key %r will not survive a re-import unchanged", key)
        lines.append(f"{key}={encode_value(value)}")
    if not lines:
        return ""
    return "\n".join(lines) + "\n"
