"""User prompt channel used by the resolver.

The resolver never renders anything itself. It builds a :class:`Prompt` and
awaits a ``Chooser``: any async callable returning the key of the chosen
option, or ``None`` when the prompt was dismissed without a choice.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, Iterable, List, Literal, Optional, Tuple

_LOG = logging.getLogger(__name__)

OptionStyle = Literal["default", "cancel"]


@dataclass(slots=True)
class PromptOption:
    key: str
    label: str
    style: OptionStyle = "default"


@dataclass(slots=True)
class Prompt:
    title: str
    message: str
    options: List[PromptOption] = field(default_factory=list)

    def keys(self) -> List[str]:
        return [option.key for option in self.options]


Chooser = Callable[[Prompt], Awaitable[Optional[str]]]


class ScriptedChooser:
    """Chooser answering prompts from a pre-recorded list of responses.

    Each response is either an option key, ``None`` (dismissed) or an index
    into the prompt's options. Every prompt received is kept in ``prompts``.
    """

    def __init__(self, responses: Iterable[str | int | None] = ()) -> None:
        self._responses: Deque[str | int | None] = deque(responses)
        self.prompts: List[Prompt] = []

    async def __call__(self, prompt: Prompt) -> Optional[str]:
        self.prompts.append(prompt)
        if not self._responses:
            raise AssertionError(f"Unexpected prompt: {prompt.title!r}")
        response = self._responses.popleft()
        if isinstance(response, int):
            return prompt.options[response].key
        return response


class ConsoleChooser:
    """Chooser that lists the options on stdout and reads a number from stdin."""

    def __init__(
        self,
        reader: Callable[[str], str] = input,
        writer: Callable[[str], None] = print,
    ) -> None:
        self._reader = reader
        self._writer = writer

    async def __call__(self, prompt: Prompt) -> Optional[str]:
        self._writer(prompt.title)
        self._writer(prompt.message)
        for index, option in enumerate(prompt.options, start=1):
            self._writer(f"  {index}. {option.label}")
        try:
            raw = await asyncio.to_thread(self._reader, "Choice (blank to dismiss): ")
        except EOFError:
            return None
        return self._parse(raw, prompt)

    @staticmethod
    def _parse(raw: str, prompt: Prompt) -> Optional[str]:
        text = raw.strip()
        if not text:
            return None
        try:
            index = int(text)
        except ValueError:
            _LOG.info("Ignoring non-numeric choice %r; treating as dismissed", text)
            return None
        if 1 <= index <= len(prompt.options):
            return prompt.options[index - 1].key
        _LOG.info("Choice %d out of range; treating as dismissed", index)
        return None


def option_pairs(prompt: Prompt) -> List[Tuple[str, str]]:
    """Return ``(key, label)`` pairs, mostly useful for logging and tests."""

    return [(option.key, option.label) for option in prompt.options]


__all__ = [
    "Chooser",
    "ConsoleChooser",
    "Prompt",
    "PromptOption",
    "ScriptedChooser",
    "option_pairs",
]
