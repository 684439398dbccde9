"""Models for lazy pipelines (stage descriptors, declarative specs, settings, run reports)."""

import logging
from enum import Enum
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StageKind(str, Enum):
    """Intermediate operation kinds."""
    MAP = "map"
    FILTER = "filter"
    FLAT_MAP = "flat_map"
    SORTED = "sorted"
    SKIP = "skip"
    LIMIT = "limit"
    PEEK = "peek"
    DISTINCT = "distinct"
    BATCH = "batch"


FUNCTION_STAGES = {StageKind.MAP, StageKind.FILTER, StageKind.FLAT_MAP, StageKind.PEEK}
COUNTED_STAGES = {StageKind.SKIP, StageKind.LIMIT, StageKind.BATCH}


class Stage(BaseModel):
    """One immutable pipeline step. Validated when attached."""
    model_config = ConfigDict(frozen=True)

    kind: StageKind
    fn: Optional[Callable[..., Any]] = Field(
        None,
        description="Element function for map/filter/flat_map/peek"
    )
    key: Optional[Callable[[Any], Any]] = Field(
        None,
        description="Sort key for sorted"
    )
    comparator: Optional[Callable[[Any, Any], int]] = Field(
        None,
        description="Two-argument comparator for sorted"
    )
    reverse: bool = Field(False, description="Invert ascending order for sorted")
    count: Optional[int] = Field(
        None,
        ge=0,
        description="Element count for skip/limit, group size for batch"
    )

    @model_validator(mode='after')
    def validate_arguments(self):
        """Enforce the arguments each kind requires."""
        if self.kind in FUNCTION_STAGES and self.fn is None:
            raise ValueError(f"{self.kind.value} stage requires a function")

        if self.kind in COUNTED_STAGES and self.count is None:
            raise ValueError(f"{self.kind.value} stage requires a count")

        if self.kind == StageKind.BATCH and self.count < 1:
            raise ValueError("batch size must be >= 1")

        if self.key is not None and self.comparator is not None:
            raise ValueError("sorted accepts either a key or a comparator, not both")

        return self

    def describe(self) -> str:
        """Short label used in logs and reprs."""
        if self.kind in COUNTED_STAGES:
            return f"{self.kind.value}({self.count})"
        if self.kind == StageKind.SORTED and self.reverse:
            return "sorted(reverse)"
        return self.kind.value


class StageSpec(BaseModel):
    """Declarative stage: registered function names instead of callables."""
    type: StageKind = Field(..., description="Stage kind")
    function: Optional[str] = Field(
        None,
        description="Name of a registered function"
    )
    argument: Optional[Any] = Field(
        None,
        description="Argument for function factories such as 'contains'"
    )
    count: Optional[int] = Field(None, ge=0, description="Count for skip/limit/batch")
    reverse: bool = Field(False, description="Descending order for sorted")

    @model_validator(mode='after')
    def validate_function_present(self):
        """Function stages need a function name, counted stages a count."""
        if self.type in FUNCTION_STAGES and not self.function:
            raise ValueError(f"{self.type.value} spec requires a function name")
        if self.type in COUNTED_STAGES and self.count is None:
            raise ValueError(f"{self.type.value} spec requires a count")
        return self


class PipelineSettings(BaseModel):
    """Runtime settings for logging and measurement."""
    log_level: str = Field("INFO", description="Root logging level name")
    track_memory: bool = Field(
        True,
        description="Trace peak memory with tracemalloc during runs"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Accept any standard logging level name, case-insensitive."""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class PerformanceInfo(BaseModel):
    """Timing and memory for one pipeline run."""
    processing_time_ms: float = Field(..., ge=0, description="Wall time in milliseconds")
    memory_usage_mb: Optional[float] = Field(
        None,
        ge=0,
        description="Peak traced memory in MB (None when tracking is off)"
    )
    input_size: int = Field(..., ge=0, description="Number of source elements")
    output_size: Optional[int] = Field(
        None,
        ge=0,
        description="Size of the result when it is sized"
    )
    operation: str = Field(..., description="Terminal operation name")


class PipelineRunReport(BaseModel):
    """Result of a declarative pipeline run."""
    result: Any = Field(None, description="Terminal result")
    terminal: str = Field(..., description="Terminal operation that produced the result")
    stages_applied: List[str] = Field(default_factory=list, description="Stage labels in order")
    performance: PerformanceInfo
