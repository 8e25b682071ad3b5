"""
Conversion hint models.

Hints are per-target options supplied by the package author. Each adapter
validates its options with one of these models; unknown keys are rejected
so a misspelled hint fails loudly instead of being ignored.
"""

from typing import Any, Dict, List, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.errors import RenderError

GlobValue = Union[str, List[str]]


class FormatHints(BaseModel):
    """Base for per-format hint models."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class CursorHints(FormatHints):
    globs: Optional[GlobValue] = None
    always_apply: Optional[bool] = Field(default=None, alias="alwaysApply")


class ClaudeHints(FormatHints):
    model: Optional[str] = None
    tools: Optional[List[str]] = None

    @field_validator("model")
    @classmethod
    def normalize_model(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else None

    @field_validator("tools", mode="before")
    @classmethod
    def split_tools(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [t.strip() for t in v.split(',') if t.strip()]
        return v


class KiroHints(FormatHints):
    inclusion: Optional[Literal["always", "fileMatch", "manual"]] = None
    file_match_pattern: Optional[str] = Field(default=None, alias="fileMatchPattern")
    domain: Optional[str] = None


class CopilotHints(FormatHints):
    apply_to: Optional[GlobValue] = Field(default=None, alias="applyTo")


class ContinueHints(FormatHints):
    globs: Optional[GlobValue] = None
    always_apply: Optional[bool] = Field(default=None, alias="alwaysApply")
    invokable: Optional[bool] = None


class NoHints(FormatHints):
    """Formats without author-configurable options."""


H = TypeVar("H", bound=FormatHints)


def validate_hints(model: Type[H], options: Optional[Dict[str, Any]], format_name: str) -> H:
    """
    Validate raw options against a hint model.

    Raises:
        RenderError: If the options do not fit the model.
    """
    try:
        return model.model_validate(dict(options or {}))
    except ValidationError as e:
        problems = '; '.join(
            f"{'.'.join(str(p) for p in err['loc']) or 'hints'}: {err['msg']}"
            for err in e.errors()
        )
        raise RenderError(format_name, f"Invalid conversion hints: {problems}") from e
