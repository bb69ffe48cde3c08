"""
Completion API request/response models.

Dataclasses for structured response handling, plus the requirement
analysis structure returned by analyze_requirement().
"""

import math
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from aiforge.models.enums import Complexity, ModuleType, Priority, TaskType, coerce_enum


@dataclass
class ChatMessage:
    """A message in a chat completion."""
    role: str  # 'system', 'user', 'assistant'
    content: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            role=data.get("role", ""),
            content=data.get("content") or "",
        )

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenUsage":
        return cls(
            prompt_tokens=data.get("prompt_tokens", 0),
            completion_tokens=data.get("completion_tokens", 0),
            total_tokens=data.get("total_tokens", 0),
        )


@dataclass
class ChatCompletionResponse:
    """Response from chat completion endpoint."""
    id: str
    model: str
    messages: List[ChatMessage]
    usage: TokenUsage

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatCompletionResponse":
        return cls(
            id=data.get("id", ""),
            model=data.get("model", ""),
            messages=[
                ChatMessage.from_dict(choice.get("message") or {})
                for choice in data.get("choices", [])
            ],
            usage=TokenUsage.from_dict(data.get("usage") or {}),
        )

    @property
    def content(self) -> str:
        """Content of the first choice, or empty string."""
        if self.messages:
            return self.messages[0].content
        return ""


def _float(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    # nan and inf are not storable hours
    return number if math.isfinite(number) else default


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


@dataclass
class AnalyzedTask:
    title: str
    description: str = ""
    type: TaskType = TaskType.DEVELOPMENT
    priority: Priority = Priority.MEDIUM
    estimated_hours: float = 0.0
    tech_stack: List[str] = field(default_factory=list)
    file_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalyzedTask":
        return cls(
            title=str(data.get("title") or "Untitled task"),
            description=str(data.get("description") or ""),
            type=coerce_enum(TaskType, data.get("type"), TaskType.DEVELOPMENT),
            priority=coerce_enum(Priority, data.get("priority"), Priority.MEDIUM),
            estimated_hours=_float(data.get("estimatedHours")),
            tech_stack=_str_list(data.get("techStack")),
            file_path=data.get("filePath") or None,
        )


@dataclass
class AnalyzedModule:
    name: str
    description: str = ""
    type: ModuleType = ModuleType.FEATURE
    priority: Priority = Priority.MEDIUM
    estimated_hours: float = 0.0
    tasks: List[AnalyzedTask] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalyzedModule":
        tasks = data.get("tasks") if isinstance(data.get("tasks"), list) else []
        return cls(
            name=str(data.get("name") or "Untitled module"),
            description=str(data.get("description") or ""),
            type=coerce_enum(ModuleType, data.get("type"), ModuleType.FEATURE),
            priority=coerce_enum(Priority, data.get("priority"), Priority.MEDIUM),
            estimated_hours=_float(data.get("estimatedHours")),
            tasks=[AnalyzedTask.from_dict(t) for t in tasks if isinstance(t, dict)],
        )


@dataclass
class AnalysisResult:
    """Structured requirement analysis returned by the AI provider."""
    summary: str
    key_features: List[str] = field(default_factory=list)
    complexity: Complexity = Complexity.MEDIUM
    estimated_hours: float = 0.0
    suggestions: str = ""
    modules: List[AnalyzedModule] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        modules = data.get("modules") if isinstance(data.get("modules"), list) else []
        return cls(
            summary=str(data.get("summary") or ""),
            key_features=_str_list(data.get("keyFeatures")),
            complexity=coerce_enum(Complexity, data.get("complexity"), Complexity.MEDIUM),
            estimated_hours=_float(data.get("estimatedHours")),
            suggestions=str(data.get("suggestions") or ""),
            modules=[AnalyzedModule.from_dict(m) for m in modules if isinstance(m, dict)],
        )
