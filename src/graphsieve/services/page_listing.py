"""Post-processing of index records for display."""

from collections import OrderedDict
from typing import Iterable

from graphsieve.logseq.journal import is_journal_name, journal_date_value
from graphsieve.models.page_record import PageRecord


def dedupe_by_uuid(records: Iterable[PageRecord]) -> list[PageRecord]:
    """Keep only the most recently modified record per non-empty uuid.

    Records without a uuid pass through. Input order is preserved for the
    survivors.
    """
    records = list(records)
    best: dict[tuple[str, str], PageRecord] = {}
    for record in records:
        if not record.uuid:
            continue
        key = (record.graph_id, record.uuid)
        current = best.get(key)
        if current is None or record.last_modified > current.last_modified:
            best[key] = record
    return [r for r in records if not r.uuid or best[(r.graph_id, r.uuid)] is r]


def is_journal_record(record: PageRecord) -> bool:
    """Journal flag from the source, or a name that encodes a date."""
    return record.journal or is_journal_name(record.name)


def split_journals(records: Iterable[PageRecord]) -> tuple[list[PageRecord], list[PageRecord]]:
    """Split records into (journals, pages), each de-duplicated by uuid.

    Journals are sorted newest date first (then newest modification); pages
    keep their input order. A uuid present among journals removes the
    plain-page copy.
    """
    records = list(records)
    journals = dedupe_by_uuid(r for r in records if is_journal_record(r))
    journal_uuids = {r.uuid for r in journals if r.uuid}
    pages = [
        r for r in dedupe_by_uuid(r for r in records if not is_journal_record(r))
        if not r.uuid or r.uuid not in journal_uuids
    ]
    journals.sort(key=lambda r: (journal_date_value(r.name), r.last_modified), reverse=True)
    return journals, pages


def group_journals_by_month(journals: Iterable[PageRecord]) -> "OrderedDict[str, list[PageRecord]]":
    """Group journal records under 'YYYY-MM' keys, preserving input order."""
    groups: OrderedDict[str, list[PageRecord]] = OrderedDict()
    for record in journals:
        value = journal_date_value(record.name)
        key = f"{value // 10000:04d}-{value // 100 % 100:02d}" if value else "undated"
        groups.setdefault(key, []).append(record)
    return groups


def has_nontrivial_summary(record: PageRecord) -> bool:
    return record.has_nontrivial_summary()
