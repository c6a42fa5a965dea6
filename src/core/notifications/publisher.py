from typing import Any, Mapping, Protocol


class StatusEventPublishError(RuntimeError):
    pass


class StatusEventPublisher(Protocol):
    def publish(self, topic: str, payload: Mapping[str, Any]) -> None: ...

    def close(self) -> None: ...
