import os
from folio.processor.models import Book
from .base import BaseParser
from .txt_parser import TxtParser, _SUPPORTED_EXTENSIONS


class UnsupportedFormatError(Exception):
    """Se lanza cuando ningún parser registrado puede manejar el archivo."""
    pass


class ParserFactory:
    """
    Registro central de parsers.

    Uso básico:
        book = ParserFactory.parse_file("/ruta/al/libro.txt")

    Los parsers se evalúan en orden de registro.
    El primero que responda True a can_handle() gana.
    """

    _DEFAULT_PARSERS: list[BaseParser] = [
        TxtParser(),
    ]

    def __init__(self):
        self._parsers: list[BaseParser] = list(self._DEFAULT_PARSERS)

    def register(self, parser: BaseParser) -> None:
        """Registra un parser adicional al inicio de la lista (mayor prioridad)."""
        self._parsers.insert(0, parser)

    def parse(self, file_path: str) -> Book:
        """
        Detecta el parser correcto para el archivo y devuelve un Book.

        Raises:
            FileNotFoundError: si el archivo no existe.
            UnsupportedFormatError: si ningún parser puede manejarlo.
        """
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"Archivo no encontrado: {file_path}")

        for parser in self._parsers:
            if parser.can_handle(file_path):
                return parser.parse(file_path)

        ext = os.path.splitext(file_path)[1].lower()
        raise UnsupportedFormatError(
            f"Formato '{ext}' no soportado. "
            f"Formatos disponibles: {self.supported_extensions()}"
        )

    @staticmethod
    def supported_extensions() -> str:
        return ", ".join(sorted(_SUPPORTED_EXTENSIONS))

    @classmethod
    def parse_file(cls, file_path: str) -> Book:
        """Shortcut: ParserFactory.parse_file('libro.txt')"""
        return cls().parse(file_path)
