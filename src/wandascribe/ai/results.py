"""Request and result types exchanged with the remote text service."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Sequence, Union

from .errors import UnknownActionTypeError

__all__ = [
    "TransformationKind",
    "RequestOptions",
    "TransformationRequest",
    "MisspelledWord",
    "Misspellings",
    "Suggestion",
    "PlainText",
    "ServiceError",
    "TransformationResult",
    "UNCERTAIN_PHRASE",
]

UNCERTAIN_PHRASE = "I'm not sure about that"


class TransformationKind(str, Enum):
    """Named transformations offered by the assistant panel."""

    SPELL_CHECK = "spell-check"
    GRAMMAR_CHECK = "grammar-check"
    IMPROVE = "improve"
    FORMAL = "formal"
    CASUAL = "casual"
    SIMPLIFY = "simplify"
    EXPAND = "expand"
    SUMMARIZE = "summarize"

    @classmethod
    def parse(cls, value: "TransformationKind | str") -> "TransformationKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise UnknownActionTypeError(message=f"Unknown action type: {value!r}", action=str(value)) from exc


@dataclass(frozen=True, slots=True)
class RequestOptions:
    """Fixed sampling options sent with every request."""

    skip_knowledge_query: bool = True
    use_public_knowledge: bool = True
    temperature: float = 0
    max_tokens: int = 10_000


@dataclass(frozen=True, slots=True)
class TransformationRequest:
    """One immutable invocation of the remote service."""

    input_text: str
    instruction: str
    options: RequestOptions = field(default_factory=RequestOptions)

    def as_payload(self) -> Dict[str, Any]:
        """Return the request in its service-neutral shape."""

        return {
            "inputText": self.input_text,
            "instruction": self.instruction,
            "skipKnowledgeQuery": self.options.skip_knowledge_query,
            "usePublicKnowledge": self.options.use_public_knowledge,
            "temperature": self.options.temperature,
            "maxTokens": self.options.max_tokens,
        }


@dataclass(frozen=True, slots=True)
class MisspelledWord:
    word: str
    suggestions: tuple[str, ...] = ()

    @classmethod
    def from_value(cls, value: Any) -> "MisspelledWord | None":
        if isinstance(value, Mapping):
            word = value.get("word")
            if not isinstance(word, str) or not word:
                return None
            raw = value.get("suggestions") or ()
            if isinstance(raw, str):
                raw = (raw,)
            suggestions = tuple(str(item) for item in raw if item not in (None, ""))
            return cls(word=word, suggestions=suggestions)
        if isinstance(value, str) and value:
            return cls(word=value)
        return None

    def as_dict(self) -> Dict[str, Any]:
        return {"word": self.word, "suggestions": list(self.suggestions)}


@dataclass(frozen=True, slots=True)
class Misspellings:
    """Structured spelling verdict."""

    misspelled: bool
    words: tuple[MisspelledWord, ...] = ()
    suggestions: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Misspellings":
        raw_words = payload.get("words") or ()
        if isinstance(raw_words, (str, Mapping)) or not isinstance(raw_words, Sequence):
            raw_words = (raw_words,)
        words = tuple(
            entry for entry in (MisspelledWord.from_value(item) for item in raw_words) if entry is not None
        )
        raw_suggestions = payload.get("suggestions") or ()
        if isinstance(raw_suggestions, str):
            raw_suggestions = (raw_suggestions,)
        suggestions = tuple(str(item) for item in raw_suggestions if item)
        return cls(misspelled=bool(payload.get("misspelled")), words=words, suggestions=suggestions)

    def suggestions_for(self, word: str) -> tuple[str, ...]:
        """Return suggestions for ``word``, falling back to the first entry."""

        for entry in self.words:
            if entry.word == word:
                return entry.suggestions
        if self.words:
            return self.words[0].suggestions
        return self.suggestions


@dataclass(frozen=True, slots=True)
class Suggestion:
    """Replacement text proposed by the service; ``None`` means no change."""

    text: str | None
    uncertain: bool = False

    @classmethod
    def from_text(cls, text: str | None) -> "Suggestion":
        return cls(text=text, uncertain=text == UNCERTAIN_PHRASE)


@dataclass(frozen=True, slots=True)
class PlainText:
    text: str


@dataclass(frozen=True, slots=True)
class ServiceError:
    message: str


TransformationResult = Union[Misspellings, Suggestion, PlainText, ServiceError]
