"""
Operator interaction contract.

Core services ask questions and report progress only through a
Prompter, so they stay independent of the terminal. The CLI provides
a click-backed implementation; tests provide a scripted one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class CollectionAborted(Exception):
    """The operator aborted input (Ctrl-C or end of input)."""


class Prompter(ABC):
    @abstractmethod
    def ask(self, text: str, default: str = "") -> str:
        """Read one line; an empty answer returns *default*."""

    @abstractmethod
    def ask_secret(self, text: str) -> str:
        """Read one line without echoing it."""

    @abstractmethod
    def confirm(self, text: str, default: bool = False) -> bool:
        """Yes/no question."""

    @abstractmethod
    def pause(self, text: str) -> None:
        """Wait for the operator to press Enter."""

    @abstractmethod
    def info(self, message: str) -> None: ...

    @abstractmethod
    def warn(self, message: str) -> None: ...

    @abstractmethod
    def error(self, message: str) -> None:
        """Report a recoverable problem (invalid input); does not exit."""
