"""
Utility functions for lazy pipelines.

Value helpers for the "valor N" sample data, a builder that turns declarative
StageSpec lists into pipelines, and performance tracking for pipeline runs.
"""

import gc
import logging
import os
import time
import tracemalloc
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from models import PerformanceInfo, PipelineRunReport, PipelineSettings, StageKind, StageSpec
from pipeline import Pipeline, source


def load_settings() -> PipelineSettings:
    """Read settings from PIPELINE_* environment variables."""
    values = {}
    if "PIPELINE_LOG_LEVEL" in os.environ:
        values["log_level"] = os.environ["PIPELINE_LOG_LEVEL"]
    if "PIPELINE_TRACK_MEMORY" in os.environ:
        values["track_memory"] = os.environ["PIPELINE_TRACK_MEMORY"]
    return PipelineSettings(**values)


def configure_logging(settings: Optional[PipelineSettings] = None) -> None:
    """basicConfig from settings; invalid environment values fall back to defaults."""
    error = None
    if settings is None:
        try:
            settings = load_settings()
        except ValidationError as e:
            error = e
            settings = PipelineSettings()

    logging.basicConfig(level=settings.log_level)
    if error is not None:
        logging.getLogger(__name__).warning(
            f"Ignoring invalid PIPELINE_* settings, using {settings.log_level}: {error}"
        )


# Configure logging
configure_logging()
logger = logging.getLogger(__name__)


# Global performance tracking
_performance_metrics = {
    "operations": [],
    "total_time_ms": 0.0,
    "total_memory_mb": 0.0,
    "operation_count": 0
}


# --------- value helpers ----------
def make_sample_values() -> List[str]:
    """The ten labelled values used throughout the examples: 10..14 then 5..9."""
    values = ["valor 1" + str(i) for i in range(5)]
    values += ["valor " + str(i) for i in range(5, 10)]
    return values


def strip_label(value: str, label: str = "valor") -> str:
    """Remove the label and all spaces: 'valor 12' -> '12'."""
    return value.replace(label, "").replace(" ", "")


def parse_int(text: str) -> int:
    return int(text)


def truncating_mod(value: int, divisor: int) -> int:
    """Remainder whose sign follows the dividend (C/Java semantics)."""
    if divisor == 0:
        raise ZeroDivisionError("integer modulo by zero")
    remainder = abs(value) % abs(divisor)
    return remainder if value >= 0 else -remainder


def is_even(value: int) -> bool:
    return truncating_mod(value, 2) == 0


def is_odd(value: int) -> bool:
    return truncating_mod(value, 2) != 0


REGISTERED_FUNCTIONS: Dict[str, Callable] = {
    "identity": lambda x: x,
    "strip_label": strip_label,
    "parse_int": parse_int,
    "is_even": is_even,
    "is_odd": is_odd,
    "square": lambda x: x * x,
    "to_string": str,
}

# Factories receive StageSpec.argument and return the element function
FUNCTION_FACTORIES: Dict[str, Callable[[Any], Callable]] = {
    "contains": lambda arg: (lambda x: arg in x),
    "add": lambda arg: (lambda x: x + arg),
    "multiply": lambda arg: (lambda x: x * arg),
    "modulo_equals": lambda arg: (lambda x: truncating_mod(x, arg[0]) == arg[1]),
}

TERMINALS = {
    "count": lambda p: p.count(),
    "to_list": lambda p: p.to_list(),
    "sum": lambda p: p.sum(),
    "reduce_sum": lambda p: p.reduce(lambda a, b: a + b),
    "find_first": lambda p: p.find_first(),
    "min": lambda p: p.min(),
    "max": lambda p: p.max(),
}


def resolve_function(spec: StageSpec) -> Callable:
    """Look up the callable named by a spec."""
    name = spec.function
    if name in FUNCTION_FACTORIES:
        if spec.argument is None:
            raise ValueError(f"Function '{name}' requires an argument")
        return FUNCTION_FACTORIES[name](spec.argument)
    if name in REGISTERED_FUNCTIONS:
        return REGISTERED_FUNCTIONS[name]
    raise ValueError(f"Unknown function: {name}")


# --------- declarative pipelines ----------
def build_pipeline(source_data: List[Any], specs: List[StageSpec]) -> Pipeline:
    """Apply each spec, in order, to a fresh pipeline over source_data"""
    lazy_pipe = source(source_data)

    for spec in specs:
        op_type = spec.type

        if op_type == StageKind.MAP:
            lazy_pipe = lazy_pipe.map(resolve_function(spec))

        elif op_type == StageKind.FILTER:
            lazy_pipe = lazy_pipe.filter(resolve_function(spec))

        elif op_type == StageKind.FLAT_MAP:
            lazy_pipe = lazy_pipe.flat_map(resolve_function(spec))

        elif op_type == StageKind.PEEK:
            lazy_pipe = lazy_pipe.peek(resolve_function(spec))

        elif op_type == StageKind.SORTED:
            key = resolve_function(spec) if spec.function else None
            lazy_pipe = lazy_pipe.sorted(key=key, reverse=spec.reverse)

        elif op_type == StageKind.SKIP:
            lazy_pipe = lazy_pipe.skip(spec.count)

        elif op_type == StageKind.LIMIT:
            lazy_pipe = lazy_pipe.limit(spec.count)

        elif op_type == StageKind.DISTINCT:
            lazy_pipe = lazy_pipe.distinct()

        elif op_type == StageKind.BATCH:
            lazy_pipe = lazy_pipe.batch(spec.count)

    return lazy_pipe


def run_pipeline(source_data: List[Any], specs: List[StageSpec], terminal: str = "to_list",
                 settings: Optional[PipelineSettings] = None) -> PipelineRunReport:
    """Build, run and measure a declarative pipeline."""
    if terminal not in TERMINALS:
        raise ValueError(f"Unknown terminal operation: {terminal}")

    settings = settings or load_settings()
    lazy_pipe = build_pipeline(source_data, specs)
    stages_applied = [stage.describe() for stage in lazy_pipe.stages]

    if settings.track_memory:
        tracemalloc.start()
        gc.collect()

    start_time = time.perf_counter()
    try:
        result = TERMINALS[terminal](lazy_pipe)
    except Exception as e:
        info = _finish_measurement(start_time, settings, terminal, len(source_data), None)
        _record_metrics(info, success=False, error=str(e))
        raise

    output_size = len(result) if isinstance(result, (list, tuple, dict, set)) else None
    info = _finish_measurement(start_time, settings, terminal, len(source_data), output_size)
    _record_metrics(info, success=True)

    logger.info(
        f"Pipeline {terminal} over {info.input_size} items took "
        f"{info.processing_time_ms:.2f} ms"
    )
    return PipelineRunReport(
        result=result,
        terminal=terminal,
        stages_applied=stages_applied,
        performance=info
    )


def _finish_measurement(start_time: float, settings: PipelineSettings, terminal: str,
                        input_size: int, output_size: Optional[int]) -> PerformanceInfo:
    end_time = time.perf_counter()
    memory_mb = None
    if settings.track_memory:
        current, peak = tracemalloc.get_traced_memory()
        memory_mb = peak / 1024 / 1024
        tracemalloc.stop()

    return PerformanceInfo(
        processing_time_ms=(end_time - start_time) * 1000,
        memory_usage_mb=memory_mb,
        input_size=input_size,
        output_size=output_size,
        operation=terminal
    )


# --------- performance tracking ----------
def _record_metrics(info: PerformanceInfo, success: bool, error: Optional[str] = None) -> None:
    entry = info.model_dump()
    entry["success"] = success
    entry["timestamp"] = time.time()
    if error is not None:
        entry["error"] = error

    _performance_metrics["operations"].append(entry)
    _performance_metrics["total_time_ms"] += info.processing_time_ms
    _performance_metrics["total_memory_mb"] += info.memory_usage_mb or 0.0
    _performance_metrics["operation_count"] += 1


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all performance metrics"""
    if _performance_metrics["operation_count"] == 0:
        return {
            "total_operations": 0,
            "total_time_ms": 0.0,
            "total_memory_mb": 0.0,
            "avg_time_ms": 0.0,
            "avg_memory_mb": 0.0,
            "failed_operations": 0
        }

    count = _performance_metrics["operation_count"]
    return {
        "total_operations": count,
        "total_time_ms": _performance_metrics["total_time_ms"],
        "total_memory_mb": _performance_metrics["total_memory_mb"],
        "avg_time_ms": _performance_metrics["total_time_ms"] / count,
        "avg_memory_mb": _performance_metrics["total_memory_mb"] / count,
        "failed_operations": sum(
            1 for op in _performance_metrics["operations"] if not op["success"]
        )
    }


def clear_performance_metrics():
    """Clear all performance metrics"""
    global _performance_metrics
    _performance_metrics = {
        "operations": [],
        "total_time_ms": 0.0,
        "total_memory_mb": 0.0,
        "operation_count": 0
    }
