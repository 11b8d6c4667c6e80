import queue
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class MonitorState:
    keys: "queue.Queue[str]" = field(default_factory=queue.Queue)
    prompt: Optional[str] = None  # text typed so far while adding a symbol
    quit_flag: bool = False

    @property
    def prompting(self) -> bool:
        return self.prompt is not None
