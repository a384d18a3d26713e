"""Console protocol for library code that reports progress."""

from __future__ import annotations

from typing import Protocol

from loguru import logger
from rich.console import ConsoleRenderable


class ConsoleLike(Protocol):
    def print(self, msg: ConsoleRenderable | str | None = None) -> None: ...

    def info(self, msg: str) -> None: ...

    def warn(self, msg: str) -> None: ...

    def error(self, msg: str) -> None: ...

    def ok(self, msg: str) -> None: ...


class LogConsole:
    """Console that sends operator messages to the debug log.

    Used when library code runs without the CLI console, so nothing reaches
    stdout.
    """

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        if isinstance(msg, str):
            logger.debug(msg)

    def info(self, msg: str) -> None:
        logger.debug(msg)

    def warn(self, msg: str) -> None:
        logger.debug(f"warning: {msg}")

    def error(self, msg: str) -> None:
        logger.debug(f"error: {msg}")

    def ok(self, msg: str) -> None:
        logger.debug(msg)


def coalesce_console(console: ConsoleLike | None) -> ConsoleLike:
    return console if console is not None else LogConsole()
