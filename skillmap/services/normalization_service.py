from __future__ import annotations

from typing import Any, Dict, Iterable, List

from skillmap.services.alias_resolver import AliasResolver
from skillmap.utils.name_utils import normalize_name


def normalize_extracted_names(names: Iterable[str], resolver: AliasResolver) -> List[Dict[str, Any]]:
    """Deduplicate extracted names and map each to a taxonomy id when one exists.

    Nothing is created: unknown names come back with ``found_in_taxonomy=False``.
    """
    results: Dict[str, Dict[str, Any]] = {}
    for raw in names:
        normalized = normalize_name(raw)
        if not normalized or normalized in results:
            continue
        competency = resolver.lookup(raw)
        results[normalized] = {
            "name": raw.strip(),
            "normalized_name": normalized,
            "competency_id": competency.id if competency else None,
            "found_in_taxonomy": competency is not None,
        }
    return list(results.values())
