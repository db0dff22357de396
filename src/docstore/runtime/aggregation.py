"""
Reduced aggregation pipeline.

Stages run strictly in order over a copy of the whole collection:

- ``$match``: filter with the query matcher
- ``$group``: group by ``_id`` (None, ``"$field"`` or a bare field name)
  with ``$sum`` / ``$count`` / ``$avg`` accumulators

Unknown stage names pass documents through unchanged.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

from docstore.errors import InvalidQuery
from docstore.runtime.documents import ID_KEY, Document
from docstore.runtime.filters import parse_filter
from docstore.runtime.logging import get_logger

logger = get_logger("Aggregate")

PipelineStage = Mapping[str, Any]


def _field_ref(operand: Any) -> str | None:
    """``"$value"`` -> ``"value"``; anything else -> None."""
    if isinstance(operand, str) and operand.startswith("$") and len(operand) > 1:
        return operand[1:]
    return None


def _numeric(value: Any) -> float | int:
    """Numeric value for accumulation; missing, bool and non-numeric count as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


# =============================================================================
# Accumulators
# =============================================================================


def _acc_sum(docs: Sequence[Document], operand: Any) -> Any:
    field = _field_ref(operand)
    if field is not None:
        return sum(_numeric(doc.get(field)) for doc in docs)
    if isinstance(operand, (int, float)) and not isinstance(operand, bool):
        # {"$sum": 1} counts documents
        return len(docs) * operand
    return 0


def _acc_count(docs: Sequence[Document], operand: Any) -> Any:
    return len(docs)


def _acc_avg(docs: Sequence[Document], operand: Any) -> Any:
    field = _field_ref(operand)
    if field is None or not docs:
        return None
    return sum(_numeric(doc.get(field)) for doc in docs) / len(docs)


ACCUMULATORS: dict[str, Callable[[Sequence[Document], Any], Any]] = {
    "$sum": _acc_sum,
    "$count": _acc_count,
    "$avg": _acc_avg,
}


# =============================================================================
# Stages
# =============================================================================


def _group_key(spec: Any) -> Callable[[Document], Any]:
    if spec is None:
        return lambda doc: None
    field = _field_ref(spec) or spec
    if not isinstance(field, str):
        raise InvalidQuery(f"$group _id must be null or a field reference, got {spec!r}")
    return lambda doc: doc.get(field)


def _hashable(value: Any) -> Any:
    """
    Grouping key for any value.

    Booleans are tagged so ``True`` and ``1`` form separate groups;
    unhashable values (lists, dicts) group by their repr.
    """
    try:
        hash(value)
    except TypeError:
        return (None, repr(value))
    return (isinstance(value, bool), value)


def _stage_match(docs: list[Document], spec: Any) -> list[Document]:
    parsed = parse_filter(spec)
    return [doc for doc in docs if parsed.matches(doc)]


def _stage_group(docs: list[Document], spec: Any) -> list[Document]:
    if not isinstance(spec, Mapping):
        raise InvalidQuery("$group requires a mapping")

    key_of = _group_key(spec.get(ID_KEY))
    groups: dict[Any, tuple[Any, list[Document]]] = {}
    for doc in docs:
        key = key_of(doc)
        groups.setdefault(_hashable(key), (key, []))[1].append(doc)

    results: list[Document] = []
    for key, group_docs in groups.values():
        result: Document = {ID_KEY: key}
        for name, acc_spec in spec.items():
            if name == ID_KEY:
                continue
            if not isinstance(acc_spec, Mapping) or len(acc_spec) != 1:
                raise InvalidQuery(f"Accumulator '{name}' must have exactly one operator")
            ((acc_op, operand),) = acc_spec.items()
            accumulator = ACCUMULATORS.get(acc_op)
            if accumulator is None:
                logger.debug(f"Skipping unsupported accumulator {acc_op} for '{name}'")
                continue
            result[name] = accumulator(group_docs, operand)
        results.append(result)
    return results


STAGES: dict[str, Callable[[list[Document], Any], list[Document]]] = {
    "$match": _stage_match,
    "$group": _stage_group,
}


def run_pipeline(documents: Sequence[Document], pipeline: Sequence[PipelineStage]) -> list[Document]:
    """
    Run an aggregation pipeline.

    Args:
        documents: Input documents (already copies; stages may rebuild them)
        pipeline: Stage mappings, each with exactly one stage name

    Returns:
        Output documents of the last stage

    Raises:
        InvalidQuery: If a stage is malformed
    """
    results = list(documents)
    for stage in pipeline:
        if not isinstance(stage, Mapping):
            raise InvalidQuery(f"Pipeline stage must be a mapping, got {type(stage).__name__}")
        if not stage:
            continue
        if len(stage) != 1:
            raise InvalidQuery(f"Pipeline stage must have exactly one key, got {sorted(stage)}")
        ((name, spec),) = stage.items()
        handler = STAGES.get(name)
        if handler is None:
            logger.debug(f"Passing documents through unsupported stage {name}")
            continue
        results = handler(results, spec)
    return results
