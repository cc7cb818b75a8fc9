import hashlib


def fingerprint(content: str) -> str:
    """
    Huella del contenido literal de un bloque (SHA-256 en hex).
    No normaliza espacios: dos bloques coinciden solo si su texto es idéntico.
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
