"""
Click-backed Prompter.

click raises Abort on Ctrl-C and end of input; both become
CollectionAborted so core services never see click types.
"""

from __future__ import annotations

import click

from provisioner.core.services.interaction import CollectionAborted, Prompter
from provisioner.ui.cli import output


class ClickPrompter(Prompter):
    def ask(self, text: str, default: str = "") -> str:
        try:
            return click.prompt(text, default=default, show_default=bool(default))
        except click.Abort:
            raise CollectionAborted() from None

    def ask_secret(self, text: str) -> str:
        try:
            return click.prompt(text, default="", show_default=False, hide_input=True)
        except click.Abort:
            raise CollectionAborted() from None

    def confirm(self, text: str, default: bool = False) -> bool:
        try:
            return click.confirm(text, default=default)
        except click.Abort:
            raise CollectionAborted() from None

    def pause(self, text: str) -> None:
        self.ask(text)

    def info(self, message: str) -> None:
        output.info(message)

    def warn(self, message: str) -> None:
        output.warn(message)

    def error(self, message: str) -> None:
        output.error(message)
