"""Test doubles for the prompter and the command runner."""

from __future__ import annotations

from collections.abc import Iterable

from provisioner.core.models.action import Receipt
from provisioner.core.services.interaction import CollectionAborted, Prompter


class ScriptedPrompter(Prompter):
    """Answers prompts from fixed lists; running out counts as Ctrl-C.

    An empty answer returns the prompt's default, like the terminal does.
    """

    def __init__(
        self,
        answers: Iterable[str] = (),
        secrets: Iterable[str] = (),
        confirms: Iterable[bool] = (),
    ):
        self.answers = list(answers)
        self.secrets = list(secrets)
        self.confirms = list(confirms)
        self.asked: list[str] = []
        self.errors: list[str] = []
        self.infos: list[str] = []
        self.warnings: list[str] = []
        self.pauses: list[str] = []

    def ask(self, text: str, default: str = "") -> str:
        self.asked.append(text)
        if not self.answers:
            raise CollectionAborted()
        return self.answers.pop(0) or default

    def ask_secret(self, text: str) -> str:
        self.asked.append(text)
        if not self.secrets:
            raise CollectionAborted()
        return self.secrets.pop(0)

    def confirm(self, text: str, default: bool = False) -> bool:
        self.asked.append(text)
        if not self.confirms:
            raise CollectionAborted()
        return self.confirms.pop(0)

    def pause(self, text: str) -> None:
        self.pauses.append(text)

    def info(self, message: str) -> None:
        self.infos.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


class FakeRunner:
    """Stand-in for run_command keyed on the first two argv words.

    ``outputs`` gives stdout for a key, ``failures`` an error message.
    """

    def __init__(
        self,
        outputs: dict[str, str] | None = None,
        failures: dict[str, str] | None = None,
    ):
        self.outputs = outputs or {}
        self.failures = failures or {}
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []

    def __call__(self, cmd, **kwargs) -> Receipt:
        argv = [str(c) for c in cmd]
        self.calls.append(argv)
        self.kwargs.append(kwargs)
        key = " ".join(argv[:2])
        adapter = kwargs.get("adapter", "shell")
        if key in self.failures:
            return Receipt.failure(adapter=adapter, operation=key, error=self.failures[key])
        return Receipt.success(adapter=adapter, operation=key, output=self.outputs.get(key, ""))

    def ran(self, *prefix: str) -> bool:
        return any(call[: len(prefix)] == list(prefix) for call in self.calls)
