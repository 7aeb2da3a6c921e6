# verifier/extractor.py
# Recupera l'oggetto JSON di analisi da una risposta del modello che può
# contenere fence markdown e testo discorsivo intorno.

from __future__ import annotations
import json
import re
from typing import Any, Dict, Iterable, List, Optional

from verifier.errors import ExtractionError, ExtractionErrorKind
from verifier.grounding import grounding_from_chunks
from verifier.models.schema import AnalysisResult, Verdict

# ``` oppure ```json / ```JSON ... (il contenuto recintato resta)
FENCE_RX = re.compile(r"```[A-Za-z0-9_+-]*")

VERDICTS = {v.value: v for v in Verdict}


def strip_fences(text: str) -> str:
    return FENCE_RX.sub("", text)


def candidate_slice(text: str) -> Optional[str]:
    """
    Ritorna il tratto tra la prima '{' e l'ultima '}' (inclusi).
    None se mancano le graffe o sono in ordine inverso.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start:end + 1]


def _malformed(message: str, raw: str) -> ExtractionError:
    return ExtractionError(ExtractionErrorKind.MALFORMED_PAYLOAD, message, raw_text=raw)


def _violation(field: str, message: str, raw: str) -> ExtractionError:
    return ExtractionError(ExtractionErrorKind.SCHEMA_VIOLATION, message, raw_text=raw, field=field)


def _require(obj: Dict[str, Any], field: str, raw: str) -> Any:
    if field not in obj or obj[field] is None:
        raise _violation(field, f"campo obbligatorio '{field}' mancante", raw)
    return obj[field]


def _as_int(value: Any, field: str, raw: str) -> int:
    # bool è sottoclasse di int: va escluso esplicitamente
    if isinstance(value, bool):
        raise _violation(field, f"'{field}' deve essere un intero, non un booleano", raw)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise _violation(field, f"'{field}' deve essere un intero, ricevuto {type(value).__name__}", raw)


def _as_str_list(value: Any, field: str, raw: str) -> List[str]:
    if not isinstance(value, list):
        raise _violation(field, f"'{field}' deve essere una lista di stringhe", raw)
    for item in value:
        if not isinstance(item, str):
            raise _violation(field, f"'{field}' contiene un elemento non testuale", raw)
    return list(value)


def validate_payload(obj: Dict[str, Any], raw: str) -> Dict[str, Any]:
    is_ai = _require(obj, "isAiGenerated", raw)
    if not isinstance(is_ai, bool):
        raise _violation("isAiGenerated", "'isAiGenerated' deve essere booleano", raw)

    score = _as_int(_require(obj, "confidenceScore", raw), "confidenceScore", raw)

    verdict = _require(obj, "verdict", raw)
    if not isinstance(verdict, str):
        raise _violation("verdict", "'verdict' deve essere una stringa", raw)
    if verdict not in VERDICTS:
        allowed = ", ".join(VERDICTS)
        raise _violation("verdict", f"verdetto sconosciuto {verdict!r} (ammessi: {allowed})", raw)

    reasoning = _require(obj, "reasoning", raw)
    if not isinstance(reasoning, str):
        raise _violation("reasoning", "'reasoning' deve essere una stringa", raw)

    indicators = obj.get("indicators")
    indicators = [] if indicators is None else _as_str_list(indicators, "indicators", raw)

    return {
        "isAiGenerated": is_ai,
        "confidenceScore": score,
        "verdict": VERDICTS[verdict],
        "reasoning": reasoning,
        "indicators": indicators,
    }


def extract_analysis(raw_text: Optional[str], grounding_chunks: Optional[Iterable[Any]] = None) -> AnalysisResult:
    """
    Pipeline: fence -> slice {..} -> json.loads -> validazione -> fonti.
    Solleva ExtractionError (MalformedPayload | SchemaViolation), mai default silenziosi.
    """
    raw = raw_text or ""
    cleaned = strip_fences(raw)

    candidate = candidate_slice(cleaned)
    if candidate is None:
        raise _malformed("nessun oggetto JSON nella risposta", raw)

    try:
        obj = json.loads(candidate)
    except (ValueError, RecursionError) as e:
        # ValueError copre JSONDecodeError e gli interi oltre il limite di cifre
        raise _malformed(f"JSON non valido: {e}", raw) from e
    if not isinstance(obj, dict):
        raise _malformed("il JSON estratto non è un oggetto", raw)

    fields = validate_payload(obj, raw)
    return AnalysisResult(grounding=grounding_from_chunks(grounding_chunks), **fields)
