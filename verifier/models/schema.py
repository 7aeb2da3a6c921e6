# verifier/models/schema.py
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SOURCE_TITLE = "Source"


class Verdict(str, Enum):
    HUMAN = "Human"
    AI = "AI"
    MIXED = "Mixed/Uncertain"


class AnalysisKind(str, Enum):
    URL = "URL"
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class Source(BaseModel):
    model_config = ConfigDict(frozen=True)

    uri: str
    title: str = DEFAULT_SOURCE_TITLE


# --- Grounding: nessuna ricerca web oppure almeno una fonte ---

class NoGrounding(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"


class Grounded(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["grounded"] = "grounded"
    sources: List[Source] = Field(min_length=1)


Grounding = Annotated[Union[NoGrounding, Grounded], Field(discriminator="kind")]

NO_GROUNDING = NoGrounding()


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    is_ai_generated: bool = Field(alias="isAiGenerated")
    confidence_score: int = Field(alias="confidenceScore")
    verdict: Verdict
    reasoning: str
    indicators: List[str] = Field(default_factory=list)
    grounding: Grounding = Field(default_factory=NoGrounding)

    @property
    def sources(self) -> Optional[List[Source]]:
        if isinstance(self.grounding, Grounded):
            return list(self.grounding.sources)
        return None

    def to_payload(self) -> Dict[str, Any]:
        """Forma JSON del contratto: `sources` compare solo se c'è grounding."""
        data: Dict[str, Any] = {
            "isAiGenerated": self.is_ai_generated,
            "confidenceScore": self.confidence_score,
            "verdict": self.verdict.value,
            "reasoning": self.reasoning,
            "indicators": list(self.indicators),
        }
        sources = self.sources
        if sources:
            data["sources"] = [s.model_dump() for s in sources]
        return data


# --- Esiti taggati: un fallimento non è mai un verdetto ---

class AnalysisOk(BaseModel):
    status: Literal["ok"] = "ok"
    kind: AnalysisKind
    result: AnalysisResult

    def to_payload(self) -> Dict[str, Any]:
        return {"status": self.status, "kind": self.kind.value, "result": self.result.to_payload()}


class ExtractionFailed(BaseModel):
    status: Literal["extraction_failed"] = "extraction_failed"
    kind: AnalysisKind
    reason: str
    error_kind: str
    field: Optional[str] = None
    raw_text: str = Field(default="", repr=False)

    def to_payload(self) -> Dict[str, Any]:
        # raw_text resta nei log, non nella risposta
        return {
            "status": self.status,
            "kind": self.kind.value,
            "reason": self.reason,
            "error_kind": self.error_kind,
            "field": self.field,
        }


class UpstreamFailed(BaseModel):
    status: Literal["upstream_failed"] = "upstream_failed"
    kind: AnalysisKind
    reason: str
    timed_out: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "kind": self.kind.value,
            "reason": self.reason,
            "timed_out": self.timed_out,
        }


AnalysisOutcome = Annotated[Union[AnalysisOk, ExtractionFailed, UpstreamFailed], Field(discriminator="status")]


# --- Payload richieste API ---

class UrlPayload(BaseModel):
    url: str


class TextPayload(BaseModel):
    text: str
