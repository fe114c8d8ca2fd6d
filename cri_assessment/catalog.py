"""
Diagnostic Catalog
==================

The catalog is the fixed list of CRI profile diagnostic statements the
assessment asks about, together with the categorical answer labels and the
tag vocabulary used for filtering.  It is loaded once from the backend and
is read-only afterwards.

Two row shapes exist in the backend.  Older tables carry ``title``,
``guidance`` and an integer ``tier``; the current ``diagnosticstatements``
table carries ``name``, ``statementtext``, boolean ``tier1`` .. ``tier4``
columns, ``responseguidance``, ``eeepackages``, ``profileid`` and ``tags``.
``diagnostic_from_row`` accepts both.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from cri_assessment import backend
from cri_assessment.logging import get_logger

logger = get_logger(__name__)

TIERS = (1, 2, 3, 4)


@dataclass(frozen=True)
class DiagnosticItem:
    """A single diagnostic statement."""
    id: str
    title: str
    guidance: str = ""
    tiers: FrozenSet[int] = frozenset()
    tags: Tuple[str, ...] = ()
    reference_package: Optional[str] = None
    response_guidance: Optional[str] = None
    profile_id: Optional[str] = None

    def in_any_tier(self, tiers: Iterable[int]) -> bool:
        return any(t in self.tiers for t in tiers)


@dataclass(frozen=True)
class ResponseKey:
    """A categorical answer label offered for every diagnostic."""
    id: Any
    label: str
    description: Optional[str] = None


DEFAULT_RESPONSE_KEYS: Tuple[ResponseKey, ...] = (
    ResponseKey(1, "Yes"),
    ResponseKey(2, "Partial"),
    ResponseKey(3, "No"),
    ResponseKey(4, "Compensating"),
)

# Shown when the backend is unreachable or has no diagnostics
PLACEHOLDER_DIAGNOSTICS: Tuple[DiagnosticItem, ...] = (
    DiagnosticItem(
        id="CRI-01",
        title="Asset Inventory Maintained",
        guidance="Ensure you maintain an up-to-date asset inventory.",
        tiers=frozenset({1}),
    ),
    DiagnosticItem(
        id="CRI-02",
        title="Access Controls Enforced",
        guidance="Implement least privilege and segregation of duties.",
        tiers=frozenset({1}),
    ),
)


def _parse_tags(raw: Any) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        parts = raw.split(",")
    else:
        parts = [str(t) for t in raw]
    return tuple(p.strip() for p in parts if p and p.strip())


def _parse_tiers(row: Dict[str, Any]) -> FrozenSet[int]:
    tiers = {t for t in TIERS if row.get(f"tier{t}")}
    tier = row.get("tier")
    if tier not in (None, ""):
        try:
            tiers.add(int(tier))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric tier {tier!r} on diagnostic {row.get('id')}")
    return frozenset(tiers)


def diagnostic_from_row(row: Dict[str, Any]) -> DiagnosticItem:
    """Build a DiagnosticItem from a backend row.

    Raises:
        ValueError: if the row has no id or belongs to no tier.
    """
    diag_id = row.get("id")
    if diag_id in (None, ""):
        raise ValueError("diagnostic row has no id")
    tiers = _parse_tiers(row)
    if not tiers:
        raise ValueError(f"diagnostic {diag_id} belongs to no tier")
    return DiagnosticItem(
        id=str(diag_id),
        title=row.get("title") or row.get("name") or str(diag_id),
        guidance=row.get("guidance") or row.get("statementtext") or "",
        tiers=tiers,
        tags=_parse_tags(row.get("tags")),
        reference_package=row.get("eeepackages") or None,
        response_guidance=row.get("responseguidance") or None,
        profile_id=row.get("profileid") or None,
    )


def diagnostics_from_rows(rows: Iterable[Dict[str, Any]]) -> List[DiagnosticItem]:
    """Convert rows in order, skipping invalid rows and duplicate ids."""
    items: List[DiagnosticItem] = []
    seen = set()
    for row in rows:
        try:
            item = diagnostic_from_row(row)
        except ValueError as e:
            logger.warning(f"Skipping diagnostic row: {e}")
            continue
        if item.id in seen:
            logger.warning(f"Skipping duplicate diagnostic id {item.id}")
            continue
        seen.add(item.id)
        items.append(item)
    return items


@dataclass
class Catalog:
    """Diagnostics plus the answer labels and tags that go with them."""
    items: List[DiagnosticItem]
    response_keys: List[ResponseKey] = field(default_factory=lambda: list(DEFAULT_RESPONSE_KEYS))
    tags: List[str] = field(default_factory=list)
    is_placeholder: bool = False

    def __post_init__(self):
        self._by_id = {item.id: item for item in self.items}
        if len(self._by_id) != len(self.items):
            raise ValueError("diagnostic ids must be unique within the catalog")

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, diagnostic_id: object) -> bool:
        return diagnostic_id in self._by_id

    def get(self, diagnostic_id: str) -> Optional[DiagnosticItem]:
        return self._by_id.get(diagnostic_id)

    @property
    def response_labels(self) -> List[str]:
        return [k.label for k in self.response_keys]

    @property
    def tiers(self) -> List[int]:
        return sorted({t for item in self.items for t in item.tiers})


def placeholder_catalog() -> Catalog:
    return Catalog(
        items=list(PLACEHOLDER_DIAGNOSTICS),
        tags=_tags_from_items(PLACEHOLDER_DIAGNOSTICS),
        is_placeholder=True,
    )


def _tags_from_items(items: Iterable[DiagnosticItem]) -> List[str]:
    tags: List[str] = []
    for item in items:
        for tag in item.tags:
            if tag not in tags:
                tags.append(tag)
    return tags


def _load_response_keys() -> List[ResponseKey]:
    try:
        rows = backend.list_response_keys()
    except Exception as e:
        logger.warning(f"Failed to load response keys, using defaults: {e}")
        return list(DEFAULT_RESPONSE_KEYS)
    keys = [
        ResponseKey(id=r.get("id"), label=r["label"], description=r.get("description"))
        for r in rows
        if r.get("label")
    ]
    return keys or list(DEFAULT_RESPONSE_KEYS)


def load_catalog() -> Catalog:
    """Load the catalog from the backend.

    Falls back to the two built-in placeholder diagnostics when the read
    fails or returns nothing usable, so the assessment stays usable.
    """
    try:
        items = diagnostics_from_rows(backend.list_diagnostics())
    except Exception as e:
        logger.warning(f"Failed to load diagnostics, using placeholder catalog: {e}")
        return placeholder_catalog()

    if not items:
        logger.warning("No diagnostics returned, using placeholder catalog")
        return placeholder_catalog()

    try:
        tags = backend.list_tags()
    except Exception as e:
        logger.warning(f"Failed to load tags, deriving from diagnostics: {e}")
        tags = []

    catalog = Catalog(
        items=items,
        response_keys=_load_response_keys(),
        tags=tags or _tags_from_items(items),
    )
    logger.info(f"Loaded {len(catalog)} diagnostics")
    return catalog
