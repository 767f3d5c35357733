"""PDB parser for the cluster observer - parses PodDisruptionBudgets."""

from __future__ import annotations

import logging
from typing import Any

from kubemend.models.pdb.pdb_info import (
    DisruptionBudget,
    LabelSelector,
    LabelSelectorRequirement,
)

logger = logging.getLogger(__name__)


class PDBParser:
    """Parses raw PDB dictionaries into DisruptionBudget models."""

    @staticmethod
    def _parse_selector(raw_selector: Any) -> LabelSelector | None:
        if not isinstance(raw_selector, dict):
            return None

        raw_match_labels = raw_selector.get("matchLabels") or {}
        match_labels = (
            {str(key): str(value) for key, value in raw_match_labels.items()}
            if isinstance(raw_match_labels, dict)
            else {}
        )

        expressions: list[LabelSelectorRequirement] = []
        for raw in raw_selector.get("matchExpressions") or []:
            if not isinstance(raw, dict) or "key" not in raw:
                continue
            expressions.append(
                LabelSelectorRequirement(
                    key=str(raw["key"]),
                    operator=str(raw.get("operator", "")),
                    values=tuple(str(v) for v in raw.get("values") or ()),
                )
            )
        return LabelSelector(match_labels=match_labels, match_expressions=tuple(expressions))

    def parse_pdb(self, item: dict[str, Any]) -> DisruptionBudget:
        """Parse a single PDB into DisruptionBudget."""
        metadata = item.get("metadata") or {}
        spec = item.get("spec") or {}

        min_available = spec.get("minAvailable")
        max_unavailable = spec.get("maxUnavailable")
        if min_available is not None and max_unavailable is not None:
            # The API server rejects this; keep minAvailable if one slips through.
            logger.warning(
                "PDB %s/%s sets both minAvailable and maxUnavailable, using minAvailable",
                metadata.get("namespace"),
                metadata.get("name"),
            )
            max_unavailable = None

        return DisruptionBudget(
            namespace=metadata.get("namespace", "default"),
            name=metadata.get("name", "Unknown"),
            selector=self._parse_selector(spec.get("selector")),
            min_available=min_available,
            max_unavailable=max_unavailable,
        )
