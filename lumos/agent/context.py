"""
Request-scoped state shared by the plan loop and the capabilities it calls.
Nothing here is module-wide: each run_task call builds its own RunContext.
"""


from dataclasses import dataclass, field
from typing import Optional

from lumos.agent.confirmations import ConfirmationTable
from lumos.agent.events import EventEmitter
from lumos.core.ids import new_id


@dataclass
class AudioInput:
    data: bytes
    mime: str = "audio/mpeg"


@dataclass
class RunContext:
    run_id: str = field(default_factory=lambda: new_id("run"))
    events: EventEmitter = field(default_factory=EventEmitter)
    confirmations: ConfirmationTable = field(default_factory=ConfirmationTable)
    audio: Optional[AudioInput] = None

    def take_audio(self) -> Optional[AudioInput]:
        # audio is single use, like a clipboard payload
        audio, self.audio = self.audio, None
        return audio
