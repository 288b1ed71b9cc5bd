from typing import Any

import pytest

from chatpatch.events import EventBus


class RecordingEventBus(EventBus):
    """EventBus that also keeps every emitted event, in order."""

    def __init__(self) -> None:
        super().__init__()
        self.emitted: list[tuple[str, tuple[Any, ...]]] = []

    def emit(self, event: str, *args: Any) -> None:
        self.emitted.append((event, args))
        super().emit(event, *args)

    def of(self, event: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.emitted if name == event]


@pytest.fixture
def bus():
    return RecordingEventBus()
