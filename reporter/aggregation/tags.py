from typing import Any, Mapping

from reporter.domain.definitions import MetricDefinition
from reporter.domain.records import Dimensions

# CloudWatch accepts at most 10 dimensions per metric and rejects empty values.
MAX_DIMENSIONS = 10


def extract_dimensions(
    definition: MetricDefinition, metadata: Mapping[str, Any]
) -> Dimensions:
    """Derive the dimension set for one event.

    Candidate values come from the definition's tag_values function and are
    restricted to the declared tags, in declared order. Values are coerced
    to str; empty strings and missing keys are dropped before truncating.
    """
    if not definition.tags:
        return ()
    candidates = definition.tag_values(metadata)
    dimensions = []
    for key in definition.tags:
        if key not in candidates:
            continue
        value = candidates[key]
        text = "" if value is None else str(value)
        if not text:
            continue
        dimensions.append((key, text))
        if len(dimensions) == MAX_DIMENSIONS:
            break
    return tuple(dimensions)
