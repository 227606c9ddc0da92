from typing import Dict, Any, Optional, List, Literal, Union, Annotated
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryKind(str, Enum):
    """Event kinds tracked by the memory engine"""
    USER_MESSAGE = "user_message"
    ASSISTANT_RESPONSE = "assistant_response"
    FACT = "fact"
    IMAGE_GENERATION = "image_generation"


class BaseMemoryItem(BaseModel):
    """Base model for all memory log entries"""
    type: str
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def kind(self) -> MemoryKind:
        return MemoryKind(self.type)


class UserMessage(BaseMemoryItem):
    """Message typed by the user"""
    type: Literal["user_message"] = "user_message"
    content: str
    role: Literal["user"] = "user"

    @property
    def text(self) -> str:
        return self.content


class AssistantResponse(BaseMemoryItem):
    """Reply produced by the assistant"""
    type: Literal["assistant_response"] = "assistant_response"
    content: str
    role: Literal["assistant"] = "assistant"
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.content


class Fact(BaseMemoryItem):
    """Explicitly remembered fact"""
    type: Literal["fact"] = "fact"
    content: str
    role: Literal["fact"] = "fact"

    @property
    def text(self) -> str:
        return self.content


class ImageGeneration(BaseMemoryItem):
    """Image generated from a prompt"""
    type: Literal["image_generation"] = "image_generation"
    prompt: str
    image_ref: str
    role: Literal["image"] = "image"

    @property
    def text(self) -> str:
        return self.prompt


MemoryItem = Annotated[
    Union[UserMessage, AssistantResponse, Fact, ImageGeneration],
    Field(discriminator="type"),
]

memory_log_adapter = TypeAdapter(List[MemoryItem])


class DocumentMetadata(BaseModel):
    """Tag and auxiliary fields attached to an indexed document"""
    model_config = ConfigDict(frozen=True)

    type: MemoryKind
    timestamp: datetime = Field(default_factory=utcnow)
    image_ref: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class Document(BaseModel):
    """Indexed text with its metadata; immutable once created"""
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    metadata: DocumentMetadata


class VectorRecord(BaseModel):
    """Term-frequency vector stored alongside the document of the same id"""
    model_config = ConfigDict(frozen=True)

    id: str
    vector: Dict[str, int] = Field(default_factory=dict)


class SearchResult(BaseModel):
    """A single similarity search hit"""
    id: str
    similarity: float
    document: Document


class MemoryStats(BaseModel):
    """Collection sizes, as shown on memory management views"""
    short_term_count: int = 0
    long_term_count: int = 0
    vector_count: int = 0
    document_count: int = 0


document_list_adapter = TypeAdapter(List[Document])
vector_list_adapter = TypeAdapter(List[VectorRecord])
