import sys
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

_FALLBACK_LEVEL = "INFO"


@runtime_checkable
class LogConsumer(Protocol):
    def register(self, level: str) -> None: ...
    def describe(self, level: str) -> str: ...


def _module_filter(modules: dict[str, str] | None) -> dict[str, str] | None:
    """Per-module minimum levels in loguru's dict-filter form, e.g. the poller at WARNING."""
    if not modules:
        return None
    return {name: str(module_level).upper() for name, module_level in modules.items()}


class ConsoleLogConsumer:
    """Short lines on a terminal that is shared with the chat transcript."""

    _STREAMS = {"stderr": sys.stderr, "stdout": sys.stdout}

    def __init__(self, stream: str = "stderr", modules: dict[str, str] | None = None):
        if stream not in self._STREAMS:
            raise ValueError(f"console stream must be one of {sorted(self._STREAMS)}, got {stream!r}")
        self._stream = stream
        self._filter = _module_filter(modules)

    def register(self, level: str) -> None:
        logger.add(
            self._STREAMS[self._stream],
            level=level,
            filter=self._filter,
            format="<dim>{time:HH:mm:ss}</dim> <level>{level.name:<7}</level> <cyan>{name}</cyan> {message}",
        )

    def describe(self, level: str) -> str:
        return f"console ({self._stream}, {level})"


class FileLogConsumer:
    """Rotating log file; ``serialize`` switches to one JSON record per line."""

    def __init__(
        self,
        path: str = "agent_desk.log",
        rotation: str = "10 MB",
        retention: int = 3,
        serialize: bool = False,
        modules: dict[str, str] | None = None,
    ):
        self._path = path
        self._rotation = rotation
        self._retention = retention
        self._serialize = serialize
        self._filter = _module_filter(modules)

    def register(self, level: str) -> None:
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self._path,
            level=level,
            filter=self._filter,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{line} - {message}",
            rotation=self._rotation,
            retention=self._retention,
            serialize=self._serialize,
        )

    def describe(self, level: str) -> str:
        kind = "json lines" if self._serialize else "text"
        return f"file ({self._path}, {kind}, {level})"


_CONSUMER_TYPES: dict[str, type] = {
    "console": ConsoleLogConsumer,
    "file": FileLogConsumer,
}

# Only warnings reach the terminal by default; the rest goes to the file.
_DEFAULT_CONSUMERS: list[dict[str, Any] | str] = [
    {"type": "console", "level": "WARNING"},
    "file",
]


def _resolve_level(name: object, fallback: str) -> str:
    candidate = str(name).strip().upper()
    try:
        logger.level(candidate)
    except ValueError:
        logger.warning(f"Unknown log level {name!r}; using {fallback}")
        return fallback
    return candidate


def setup_logging(
    level: str = _FALLBACK_LEVEL,
    consumers: list[dict[str, Any] | str] | None = None,
) -> list[str]:
    """Replace all sinks with the configured consumers.

    ``consumers`` entries are either a type name (``"console"``) or a dict with
    ``type``, an optional ``level`` and the consumer's own options. Entries that
    cannot be built are skipped with a warning. Returns one description per
    registered consumer.
    """
    logger.remove()
    default_level = _resolve_level(level, _FALLBACK_LEVEL)

    descriptions: list[str] = []
    for entry in _DEFAULT_CONSUMERS if consumers is None else consumers:
        config = {"type": entry} if isinstance(entry, str) else dict(entry)
        sink_type = config.pop("type", "")
        sink_level = _resolve_level(config.pop("level", default_level), default_level)

        cls = _CONSUMER_TYPES.get(sink_type)
        if cls is None:
            logger.warning(f"Unknown log consumer type: {sink_type!r}")
            continue
        try:
            consumer = cls(**config)
        except (TypeError, ValueError) as ex:
            logger.warning(f"Skipping {sink_type} log consumer: {ex}")
            continue

        consumer.register(sink_level)
        descriptions.append(consumer.describe(sink_level))

    return descriptions
