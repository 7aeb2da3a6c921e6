# verifier/errors.py
from enum import Enum
from typing import Optional


class ExtractionErrorKind(str, Enum):
    MALFORMED_PAYLOAD = "MalformedPayload"
    SCHEMA_VIOLATION = "SchemaViolation"


class ExtractionError(ValueError):
    """
    La risposta del modello non contiene un oggetto di analisi valido.
    `raw_text` è sempre il testo originale ricevuto, per la diagnostica.
    """

    def __init__(self, kind: ExtractionErrorKind, message: str, raw_text: str, field: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.raw_text = raw_text
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"{self.kind.value} ({self.field}): {self.message}"
        return f"{self.kind.value}: {self.message}"


class UpstreamError(RuntimeError):
    """Chiamata al modello fallita (rete, API, chiave mancante, risposta vuota)."""

    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out


class InputError(ValueError):
    """Input utente non valido. `status_code` è il codice HTTP da restituire."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
