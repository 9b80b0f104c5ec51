from abc import ABC, abstractmethod
from src.Domain import QrImage


class IQrRenderer(ABC):

    @abstractmethod
    def render(self, payload: str) -> QrImage:...
