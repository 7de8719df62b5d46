"""
Append-only conversation log for one plan loop run.

Turns are frozen once appended; the planner only ever sees a tuple snapshot.
"""


from dataclasses import dataclass
from typing import Iterator, Literal, Tuple

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class Turn:
    role: Role
    content: str

    def as_message(self) -> dict:
        return {"role": self.role, "content": self.content}


class Conversation:
    def __init__(self):
        self._turns: list[Turn] = []

    def append(self, role: Role, content: str) -> Turn:
        if role not in ("user", "assistant"):
            raise ValueError(f"Unknown role: {role}")
        turn = Turn(role=role, content=content)
        self._turns.append(turn)
        return turn

    def user(self, content: str) -> Turn:
        return self.append("user", content)

    def assistant(self, content: str) -> Turn:
        return self.append("assistant", content)

    def view(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    def messages(self) -> list[dict]:
        return [t.as_message() for t in self._turns]

    @property
    def last(self) -> Turn | None:
        return self._turns[-1] if self._turns else None

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.view())
