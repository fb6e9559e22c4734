import logging
from typing import Any, Dict, Mapping, Optional

from clickhouse_core import json_impl
from clickhouse_core.driver.common import coerce_int

logger = logging.getLogger(__name__)
SUMMARY_HEADER = 'X-ClickHouse-Summary'


class QuerySummary:
    """
    Progress totals reported by the ClickHouse server in the X-ClickHouse-Summary response header
    """
    summary: Dict[str, Any]

    def __init__(self, summary: Optional[Dict[str, Any]] = None):
        self.summary = summary or {}

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> 'QuerySummary':
        raw = headers.get(SUMMARY_HEADER)
        if not raw:
            return cls()
        try:
            parsed = json_impl.json_loads(raw)
        except ValueError:
            logger.warning('Unable to parse ClickHouse summary header %s', raw)
            return cls()
        return cls(parsed if isinstance(parsed, dict) else None)

    @property
    def read_rows(self) -> int:
        return coerce_int(self.summary.get('read_rows'))

    @property
    def read_bytes(self) -> int:
        return coerce_int(self.summary.get('read_bytes'))

    @property
    def written_rows(self) -> int:
        return coerce_int(self.summary.get('written_rows'))

    @property
    def written_bytes(self) -> int:
        return coerce_int(self.summary.get('written_bytes'))

    @property
    def total_rows_to_read(self) -> int:
        return coerce_int(self.summary.get('total_rows_to_read'))

    @property
    def result_rows(self) -> int:
        return coerce_int(self.summary.get('result_rows'))

    @property
    def result_bytes(self) -> int:
        return coerce_int(self.summary.get('result_bytes'))

    @property
    def elapsed_ns(self) -> int:
        return coerce_int(self.summary.get('elapsed_ns'))

    def __eq__(self, other):
        return isinstance(other, QuerySummary) and self.summary == other.summary

    def __repr__(self):
        return f'QuerySummary({self.summary})'
