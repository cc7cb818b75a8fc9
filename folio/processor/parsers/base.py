from abc import ABC, abstractmethod
from folio.processor.models import Book


class BaseParser(ABC):
    @abstractmethod
    def can_handle(self, file_path: str) -> bool:
        """Devuelve True si el parser puede manejar el archivo."""
        raise NotImplementedError

    @abstractmethod
    def parse(self, file_path: str) -> Book:
        """Parsea el archivo y devuelve un Book listo para persistir."""
        raise NotImplementedError
