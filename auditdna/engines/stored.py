"""Engine backed by an EngineRepository. Filtering, sorting and paging run over the engine's records."""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from auditdna.application.engine_repository import EngineRepository
from auditdna.domain.models.audit import AuditLogEntry
from auditdna.domain.models.engine import (
    EngineDescriptor,
    EngineRecord,
    SearchOptions,
    SortOrder,
    UploadRecord,
)
from auditdna.domain.models.report import Report
from auditdna.domain.validators.search_validator import parse_float_filter
from auditdna.engines.base import BaseEngine

Predicate = Callable[[EngineRecord], bool]
SortKey = Callable[[EngineRecord], Any]

GENERIC_SORT_FIELDS: Dict[str, SortKey] = {
    "createdAt": lambda r: r.created_at,
    "updatedAt": lambda r: r.updated_at,
    "testDate": lambda r: r.recorded_at,
    "name": lambda r: r.name.lower(),
    "value": lambda r: r.value,
    "location": lambda r: r.location.lower(),
    "score": lambda r: r.score,
    "complianceStatus": lambda r: r.compliance_status.value,
}


def _contains(needle: str, *haystacks: Optional[str]) -> bool:
    needle = needle.lower()
    return any(needle in (h or "").lower() for h in haystacks)


def sort_records(records: List[EngineRecord], key: SortKey, order: SortOrder) -> List[EngineRecord]:
    """Stable sort; records without a value for the key always go last."""
    present = [r for r in records if key(r) is not None]
    missing = [r for r in records if key(r) is None]
    present.sort(key=key, reverse=order == SortOrder.DESC)
    return present + missing


class StoredEngine(BaseEngine):
    """Generic engine: name/location free text, location, complianceStatus and value range filters."""

    sort_keys: Dict[str, SortKey] = GENERIC_SORT_FIELDS

    def __init__(self, descriptor: EngineDescriptor, repository: EngineRepository) -> None:
        super().__init__(descriptor)
        self._repository = repository

    @property
    def sortable_fields(self) -> Sequence[str]:
        return tuple(self.sort_keys)

    def _predicates(self, query: Optional[str], filters: Mapping[str, Any]) -> List[Predicate]:
        predicates: List[Predicate] = []
        if query:
            predicates.append(lambda r: _contains(query, r.name, r.location))
        location = filters.get("location")
        if location:
            predicates.append(lambda r: _contains(str(location), r.location))
        status = filters.get("complianceStatus")
        if status:
            wanted = str(status).lower()
            predicates.append(lambda r: r.compliance_status.value == wanted)
        low = parse_float_filter(filters, "valueMin")
        if low is not None:
            predicates.append(lambda r: r.value >= low)
        high = parse_float_filter(filters, "valueMax")
        if high is not None:
            predicates.append(lambda r: r.value <= high)
        return predicates

    async def _matching(self, query: Optional[str], filters: Mapping[str, Any]) -> List[EngineRecord]:
        predicates = self._predicates(query, filters)
        records = await self._repository.list_records(self.name)
        return [r for r in records if all(p(r) for p in predicates)]

    async def _perform_search(
        self, query: Optional[str], filters: Mapping[str, Any], options: SearchOptions
    ) -> List[EngineRecord]:
        matches = await self._matching(query, filters)
        key = self.sort_keys[options.sort_by or self.default_sort_by]
        ordered = sort_records(matches, key, options.sort_order)
        return ordered[options.offset : options.offset + options.limit]

    async def _search_count(self, query: Optional[str], filters: Mapping[str, Any]) -> int:
        return len(await self._matching(query, filters))

    async def _save_upload(self, upload: UploadRecord) -> UploadRecord:
        return await self._repository.save_upload(upload)

    async def _save_report(self, report: Report) -> Report:
        return await self._repository.save_report(report)

    async def _save_audit_log(self, entry: AuditLogEntry) -> AuditLogEntry:
        return await self._repository.save_audit_log(entry)
