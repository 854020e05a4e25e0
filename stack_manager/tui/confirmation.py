"""Two-stage confirmation for destroying a stack."""

from dataclasses import dataclass
from enum import IntEnum

FIRST_ANSWER = "yes"
SECOND_ANSWER = "destroy"


class ConfirmationStage(IntEnum):
    IDLE = 0
    FIRST_PROMPT = 1
    SECOND_PROMPT = 2


@dataclass
class ConfirmationFlow:
    """Modal text entry that must read "yes" and then "destroy".

    While the flow is active it consumes every key. Wrong answers clear the
    current input and keep the prompt; Escape cancels from either prompt.
    """
    stage: ConfirmationStage = ConfirmationStage.IDLE
    first_input: str = ""
    second_input: str = ""

    @property
    def active(self) -> bool:
        return self.stage != ConfirmationStage.IDLE

    def begin(self) -> None:
        self.stage = ConfirmationStage.FIRST_PROMPT
        self.first_input = ""
        self.second_input = ""

    def reset(self) -> None:
        self.stage = ConfirmationStage.IDLE
        self.first_input = ""
        self.second_input = ""

    def handle_key(self, key: str) -> bool:
        """Feed one key. Returns True once the second answer is confirmed."""
        if not self.active:
            return False

        if key == "escape":
            self.reset()
            return False

        if key == "enter":
            if self.stage == ConfirmationStage.FIRST_PROMPT:
                if self.first_input == FIRST_ANSWER:
                    self.stage = ConfirmationStage.SECOND_PROMPT
                    self.second_input = ""
                else:
                    self.first_input = ""
                return False

            if self.second_input == SECOND_ANSWER:
                self.reset()
                return True
            self.second_input = ""
            return False

        if key == "backspace":
            self._set_input(self._current_input()[:-1])
        elif len(key) == 1 and key.isprintable():
            self._set_input(self._current_input() + key)
        # Any other named key is swallowed
        return False

    def _current_input(self) -> str:
        if self.stage == ConfirmationStage.FIRST_PROMPT:
            return self.first_input
        return self.second_input

    def _set_input(self, value: str) -> None:
        if self.stage == ConfirmationStage.FIRST_PROMPT:
            self.first_input = value
        else:
            self.second_input = value
