"""Typed records exchanged with the backend service."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ModelInfo(BaseModel):
    """An entry in the backend's model catalog."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str = ""
    context_size: int | None = Field(default=None, alias="contextSize")

    @field_validator("id", mode="before")
    @classmethod
    def _validate_id(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Model id must be a non-empty string.")
        return value.strip()

    @property
    def label(self) -> str:
        return self.name.strip() or self.id


class Workspace(BaseModel):
    """A backend-owned grouping context required by agent mode."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    description: str | None = None
    is_active: bool = True
    workspace_type: str = "personal"

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            raise ValueError("Workspace id must not be empty.")
        return str(value).strip()

    @property
    def label(self) -> str:
        return self.name.strip() or self.id


class HistoryItem(BaseModel):
    """One entry of the rolling agent memory sent back with each agent request."""

    type: str
    content: str | None = None
    name: str | None = None
    arguments: str | None = None


class AgentStats(BaseModel):
    """Health and request counters reported by the agent service."""

    model_config = ConfigDict(extra="ignore")

    healthy: bool = False
    stats: dict[str, float] = Field(default_factory=dict)

    @field_validator("stats", mode="before")
    @classmethod
    def _numeric_only(cls, value: Any) -> dict[str, float]:
        if not isinstance(value, dict):
            return {}
        return {
            str(key): float(item)
            for key, item in value.items()
            if isinstance(item, (int, float)) and not isinstance(item, bool)
        }

    def summary(self) -> str:
        """Render a compact multi-line report for the info screen."""
        lines = [f"Healthy: {'yes' if self.healthy else 'no'}"]
        for key in sorted(self.stats):
            value = self.stats[key]
            shown = f"{value:.2f}" if not value.is_integer() else f"{int(value)}"
            lines.append(f"{key.replace('_', ' ')}: {shown}")
        return "\n".join(lines)
