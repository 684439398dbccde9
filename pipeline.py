"""
Lazy, single-pass sequence pipelines.

A Pipeline wraps a source iterable and a tuple of stages. Nothing runs until
a terminal operation (count, to_list, reduce, ...) is called, and a pipeline
may be run only once: afterwards every operation on it, or on any view
chained from the same source, raises AlreadyConsumedError.
"""

import functools
import itertools
import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from models import Stage, StageKind

logger = logging.getLogger(__name__)

ALREADY_CONSUMED_MESSAGE = "stream has already been operated upon or closed"

_MISSING = object()


class PipelineError(Exception):
    """Base class for pipeline failures."""
    pass


class AlreadyConsumedError(PipelineError, RuntimeError):
    """Raised when a pipeline is used after it was run, linked or closed."""

    def __init__(self, message: str = ALREADY_CONSUMED_MESSAGE):
        super().__init__(message)


class TransformationError(PipelineError):
    """Raised when a stage or terminal function fails on an element."""

    def __init__(self, operation: str, element: Any, cause: BaseException):
        self.operation = operation
        self.element = element
        self.cause = cause
        super().__init__(f"{operation} failed on element {element!r}: {cause}")


class _TraversalState:
    """Consumption flag shared by every view chained from one source."""
    __slots__ = ("consumed",)

    def __init__(self):
        self.consumed = False


class Pipeline:
    """
    A chainable, lazy, one-shot sequence. Intermediate operations return a
    new view over the same source; terminal operations run the whole chain.
    """

    def __init__(self, source: Iterable[Any], stages=(), state: Optional[_TraversalState] = None):
        self._source = source
        self._stages = tuple(stages)
        self._state = state if state is not None else _TraversalState()
        self._linked = False       # set once this view has been extended

    @classmethod
    def of(cls, *values) -> "Pipeline":
        return cls(list(values))

    @classmethod
    def empty(cls) -> "Pipeline":
        return cls([])

    @property
    def consumed(self) -> bool:
        return self._state.consumed

    @property
    def stages(self):
        return self._stages

    # --------- chainable operators (lazy) ----------
    def map(self, fn: Callable[[Any], Any]) -> "Pipeline":
        return self._with_stage(Stage(kind=StageKind.MAP, fn=fn))

    def filter(self, predicate: Callable[[Any], bool]) -> "Pipeline":
        return self._with_stage(Stage(kind=StageKind.FILTER, fn=predicate))

    def flat_map(self, fn: Callable[[Any], Iterable[Any]]) -> "Pipeline":
        """Replace each element with the elements of fn(element), in order."""
        return self._with_stage(Stage(kind=StageKind.FLAT_MAP, fn=fn))

    def sorted(self, key=None, reverse: bool = False, comparator=None) -> "Pipeline":
        """
        Stable sort of all upstream elements, by natural order, by key, or by
        a two-argument comparator returning negative/zero/positive.
        """
        return self._with_stage(
            Stage(kind=StageKind.SORTED, key=key, comparator=comparator, reverse=reverse)
        )

    def skip(self, n: int) -> "Pipeline":
        return self._with_stage(Stage(kind=StageKind.SKIP, count=n))

    def limit(self, n: int) -> "Pipeline":
        return self._with_stage(Stage(kind=StageKind.LIMIT, count=n))

    def peek(self, action: Callable[[Any], Any]) -> "Pipeline":
        """Call action on each element as it passes through."""
        return self._with_stage(Stage(kind=StageKind.PEEK, fn=action))

    def distinct(self) -> "Pipeline":
        """Drop repeated elements, keeping first occurrences in order."""
        return self._with_stage(Stage(kind=StageKind.DISTINCT))

    def batch(self, size: int) -> "Pipeline":
        """Group elements into tuples of up to size elements."""
        return self._with_stage(Stage(kind=StageKind.BATCH, count=size))

    def chunk(self, size: int) -> "Pipeline":
        """Alias for batch()"""
        return self.batch(size)

    # --------- terminal operations (run the pipeline once) ----------
    def count(self) -> int:
        total = 0
        for _ in self._begin_terminal("count"):
            total += 1
        return total

    def to_list(self) -> List[Any]:
        return list(self._begin_terminal("to_list"))

    to_array = to_list

    def reduce(self, op: Callable[[Any, Any], Any], initial=_MISSING):
        """
        Left fold of the elements with op. Without an initial value an empty
        pipeline gives None and a single element is returned unchanged.
        """
        it = self._begin_terminal("reduce")
        if initial is _MISSING:
            acc = next(it, _MISSING)
            if acc is _MISSING:
                return None
        else:
            acc = initial
        for item in it:
            acc = _call("reduce", op, item, acc, item)
        return acc

    def sum(self):
        """Return the sum of all elements (0 when empty)"""
        total = 0
        for item in self._begin_terminal("sum"):
            total += item
        return total

    def find_first(self, default=None):
        """Return the first element, or default if empty"""
        return next(self._begin_terminal("find_first"), default)

    def any_match(self, predicate: Callable[[Any], bool]) -> bool:
        for item in self._begin_terminal("any_match"):
            if _call("any_match", predicate, item, item):
                return True
        return False

    def all_match(self, predicate: Callable[[Any], bool]) -> bool:
        for item in self._begin_terminal("all_match"):
            if not _call("all_match", predicate, item, item):
                return False
        return True

    def none_match(self, predicate: Callable[[Any], bool]) -> bool:
        for item in self._begin_terminal("none_match"):
            if _call("none_match", predicate, item, item):
                return False
        return True

    def min(self, key=None, default=None):
        """Return the smallest element, or default if empty"""
        return _extreme("min", min, self._begin_terminal("min"), key, default)

    def max(self, key=None, default=None):
        """Return the largest element, or default if empty"""
        return _extreme("max", max, self._begin_terminal("max"), key, default)

    def for_each(self, action: Callable[[Any], Any]) -> None:
        for item in self._begin_terminal("for_each"):
            _call("for_each", action, item, item)

    def collect(self, collector: Callable[[Iterator[Any]], Any]):
        """Hand the element iterator to collector (e.g. set, tuple, a summing function)."""
        return _call("collect", collector, None, self._begin_terminal("collect"))

    def group_by(self, key_fn: Callable[[Any], Any]) -> Dict[Any, List[Any]]:
        """Group elements by the result of key_fn"""
        groups = {}
        for item in self._begin_terminal("group_by"):
            key = _call("group_by", key_fn, item, item)
            groups.setdefault(key, []).append(item)
        return groups

    def close(self) -> None:
        """Mark the pipeline consumed without running it. Safe to repeat."""
        self._state.consumed = True

    # --------- protocols ----------
    def __iter__(self) -> Iterator[Any]:
        return self._begin_terminal("iterate")

    def __enter__(self) -> "Pipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        labels = ", ".join(stage.describe() for stage in self._stages)
        return f"Pipeline(stages=[{labels}], consumed={self._state.consumed})"

    # --------- helpers ----------
    def _ensure_usable(self):
        if self._state.consumed or self._linked:
            logger.warning(f"Rejected reuse of {self!r}")
            raise AlreadyConsumedError()

    def _with_stage(self, stage: Stage) -> "Pipeline":
        self._ensure_usable()
        self._linked = True
        return Pipeline(self._source, self._stages + (stage,), self._state)

    def _begin_terminal(self, operation: str) -> Iterator[Any]:
        self._ensure_usable()
        self._state.consumed = True
        self._linked = True
        logger.debug(f"Running {operation} over {len(self._stages)} stage(s)")

        it = iter(self._source)
        for stage in self._stages:
            it = _apply_stage(stage, it)
        return it


def source(sequence: Iterable[Any]) -> Pipeline:
    """Create a fresh, unconsumed pipeline over sequence. Does not iterate it."""
    return Pipeline(sequence)


def _call(operation: str, fn, element, *args):
    """Run a user function, wrapping its failure in TransformationError."""
    try:
        return fn(*args)
    except PipelineError:
        raise
    except Exception as e:
        logger.warning(f"{operation} failed on {element!r}: {e}")
        raise TransformationError(operation, element, e) from e


def _extreme(operation: str, pick, it: Iterator[Any], key, default):
    """Run the min/max builtin, wrapping key and comparison failures."""
    if key is not None:
        user_key = key
        key = lambda item: _call(operation, user_key, item, item)
    try:
        return pick(it, key=key, default=default)
    except PipelineError:
        raise
    except Exception as e:
        logger.warning(f"{operation} failed: {e}")
        raise TransformationError(operation, None, e) from e


def _apply_stage(stage: Stage, it: Iterator[Any]) -> Iterator[Any]:
    kind = stage.kind
    if kind == StageKind.MAP:
        return _map(stage.fn, it)
    elif kind == StageKind.FILTER:
        return _filter(stage.fn, it)
    elif kind == StageKind.FLAT_MAP:
        return _flat_map(stage.fn, it)
    elif kind == StageKind.SORTED:
        return _sorted(stage, it)
    elif kind == StageKind.SKIP:
        return itertools.islice(it, stage.count, None)
    elif kind == StageKind.LIMIT:
        return itertools.islice(it, stage.count)
    elif kind == StageKind.PEEK:
        return _peek(stage.fn, it)
    elif kind == StageKind.DISTINCT:
        return _distinct(it)
    elif kind == StageKind.BATCH:
        return _batch(stage.count, it)
    raise ValueError(f"Unknown stage: {kind}")


def _map(fn, it):
    for x in it:
        yield _call("map", fn, x, x)


def _filter(predicate, it):
    for x in it:
        if _call("filter", predicate, x, x):
            yield x


def _flat_map(fn, it):
    for x in it:
        inner = _call("flat_map", fn, x, x)
        if isinstance(inner, Pipeline):
            yield from inner._begin_terminal("flat_map")
        else:
            yield from _call("flat_map", iter, x, inner)


def _sorted(stage: Stage, it):
    items = list(it)
    key = stage.key
    if stage.comparator is not None:
        key = functools.cmp_to_key(stage.comparator)
    try:
        items.sort(key=key, reverse=stage.reverse)
    except PipelineError:
        raise
    except Exception as e:
        logger.warning(f"sorted failed: {e}")
        raise TransformationError("sorted", None, e) from e
    yield from items


def _peek(action, it):
    for x in it:
        _call("peek", action, x, x)
        yield x


def _distinct(it):
    seen = set()
    for x in it:
        if _call("distinct", seen.__contains__, x, x):
            continue
        seen.add(x)
        yield x


def _batch(size, it):
    bucket = []
    for x in it:
        bucket.append(x)
        if len(bucket) == size:
            yield tuple(bucket)
            bucket = []
    if bucket:
        yield tuple(bucket)
