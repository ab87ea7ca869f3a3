from abc import ABC, abstractmethod


class MessagePlatformPort(ABC):
    @abstractmethod
    def send_text(self, recipient_id: str, text: str) -> None:
        """Deliver text to the recipient. Raises SendFailure when the transport fails."""
        raise NotImplementedError
