"""Session driver: single-shot call and the interactive chat loop (exit, quit, cls)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from gemini_client import GeminiClient, Turn

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit")
CLEAR_COMMAND = "cls"
CLEAR_SCREEN = "\033[2J\033[H"

Caller = Callable[[Sequence[Turn]], str | None]


class Action(str, Enum):
    EXIT = "exit"
    CLEAR = "clear"
    SKIP = "skip"
    REPLY = "reply"
    FAILED = "failed"


@dataclass
class SessionStep:
    """Outcome of one input line."""

    action: Action
    reply: str | None = None


class ChatSession:
    """
    Transcript plus the transition logic for one input line.
    No printing here; run_chat renders each SessionStep.
    """

    def __init__(self, call: Caller):
        self._call = call
        self.transcript: list[Turn] = []

    def handle(self, line: str) -> SessionStep:
        if line in EXIT_COMMANDS:
            return SessionStep(Action.EXIT)
        if line == CLEAR_COMMAND:
            self.transcript.clear()
            return SessionStep(Action.CLEAR)
        if not line.strip():
            return SessionStep(Action.SKIP)

        user_turn = Turn(role="user", text=line)
        self.transcript.append(user_turn)
        try:
            reply = self._call(list(self.transcript))
        except BaseException:
            self._rollback(user_turn)
            raise
        if reply is None:
            self._rollback(user_turn)
            return SessionStep(Action.FAILED)
        self.transcript.append(Turn(role="model", text=reply))
        return SessionStep(Action.REPLY, reply)

    def _rollback(self, user_turn: Turn) -> None:
        """Drop the unanswered user turn so the transcript never ends on it."""
        if self.transcript and self.transcript[-1] is user_turn:
            self.transcript.pop()
        else:
            logger.error("Transcript does not end with the pending user turn; nothing removed")


def run_once(client: GeminiClient, prompt: str) -> str | None:
    """Single-shot: send one user turn, print the reply if there is one."""
    reply = client.generate([Turn(role="user", text=prompt)])
    if reply is not None:
        print(reply)
    return reply


def run_chat(client: GeminiClient, input_fn: Callable[[str], str] = input) -> None:
    """Run the interactive chat loop until exit/quit or end of input."""
    session = ChatSession(client.generate)

    print(f"Model: {client.model}")
    print(f"Commands: {', '.join(EXIT_COMMANDS)}, {CLEAR_COMMAND}")
    print()

    while True:
        try:
            line = input_fn("You: ")
        except (EOFError, KeyboardInterrupt):
            print()
            break

        step = session.handle(line)
        if step.action is Action.EXIT:
            break
        if step.action is Action.CLEAR:
            print(CLEAR_SCREEN, end="", flush=True)
            print("Dialog history cleared.")
        elif step.action is Action.REPLY:
            print(f"AI: {step.reply}")
            print()
    logger.debug("Session ended with %d turns", len(session.transcript))
