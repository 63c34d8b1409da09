"""
Modification Queries

Provides:
- Filter criteria for modification listings
- Aggregate statistics
- Pagination
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..statemachine.states import (
    Modification,
    ModificationEntity,
    ModificationStatus,
    ModificationType,
    NetworkType
)


@dataclass
class ModificationFilters:
    """
    Criteria for listing modifications

    Empty lists and None values match everything. Criteria combine
    with AND; values inside one list combine with OR.
    """
    statuses: List[ModificationStatus] = field(default_factory=list)
    change_types: List[ModificationType] = field(default_factory=list)
    entities: List[ModificationEntity] = field(default_factory=list)
    proposed_by: List[str] = field(default_factory=list)
    site_id: Optional[str] = None
    zone_id: Optional[str] = None
    rack_id: Optional[str] = None
    network: Optional[NetworkType] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None

    def matches(self, modification: Modification) -> bool:
        target = modification.target
        if self.statuses and modification.status not in self.statuses:
            return False
        if self.change_types and modification.change_type not in self.change_types:
            return False
        if self.entities and target.entity not in self.entities:
            return False
        if self.proposed_by and modification.proposer_id not in self.proposed_by:
            return False
        if self.site_id and target.site_id != self.site_id:
            return False
        if self.zone_id and target.zone_id != self.zone_id:
            return False
        if self.rack_id and target.rack_id != self.rack_id:
            return False
        if self.network and target.network != self.network:
            return False
        if self.date_from and modification.created_at < self.date_from:
            return False
        if self.date_to and modification.created_at > self.date_to:
            return False
        if self.search:
            needle = self.search.lower()
            haystack = " ".join(
                s for s in (modification.id, modification.justification, target.entity_id) if s
            ).lower()
            if needle not in haystack:
                return False
        return True


def filter_modifications(
    modifications: Iterable[Modification],
    filters: Optional[ModificationFilters] = None
) -> List[Modification]:
    """Apply filters and sort newest first"""
    items = [m for m in modifications if filters is None or filters.matches(m)]
    items.sort(key=lambda m: m.created_at, reverse=True)
    return items


@dataclass
class ModificationStats:
    """Aggregate counts over a set of modifications"""
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_type: Dict[str, int] = field(default_factory=dict)
    by_entity: Dict[str, int] = field(default_factory=dict)
    by_user: Dict[str, int] = field(default_factory=dict)
    by_network: Dict[str, int] = field(default_factory=dict)

    def count(self, status: ModificationStatus) -> int:
        return self.by_status.get(status.value, 0)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"total": self.total}
        for status in ModificationStatus:
            data[status.value.lower()] = self.count(status)
        data.update({
            "by_type": dict(self.by_type),
            "by_entity": dict(self.by_entity),
            "by_user": dict(self.by_user),
            "by_network": dict(self.by_network)
        })
        return data


def compute_statistics(modifications: Iterable[Modification]) -> ModificationStats:
    """Count modifications by status, type, entity, proposer and network"""
    stats = ModificationStats(by_status={s.value: 0 for s in ModificationStatus})

    for mod in modifications:
        stats.total += 1
        stats.by_status[mod.status.value] += 1
        for bucket, key in (
            (stats.by_type, mod.change_type.value),
            (stats.by_entity, mod.target.entity.value),
            (stats.by_user, mod.proposer_id),
            (stats.by_network, mod.target.network.value),
        ):
            bucket[key] = bucket.get(key, 0) + 1

    return stats


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass
class Page:
    """One page of a listing"""
    items: List[Modification]
    page: int
    page_size: int
    total_items: int

    @property
    def total_pages(self) -> int:
        return -(-self.total_items // self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": [m.to_dict() for m in self.items],
            "pagination": {
                "page": self.page,
                "page_size": self.page_size,
                "total_pages": self.total_pages,
                "total_items": self.total_items,
                "has_next": self.has_next,
                "has_previous": self.has_previous
            }
        }


def paginate(items: List[Modification], page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Page:
    """
    Slice a listing into a page

    Pages are numbered from 1. A page past the end is empty.

    Raises:
        ValueError: if page < 1 or page_size is outside 1..MAX_PAGE_SIZE
    """
    if page < 1:
        raise ValueError(f"page must be at least 1, got {page}")
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}")

    start = (page - 1) * page_size
    return Page(
        items=items[start:start + page_size],
        page=page,
        page_size=page_size,
        total_items=len(items)
    )
