"""
Program-level reporting across audits.

Counts audits per status and breaks completed audits down by audit type,
home type, province, heating fuel source and foundation type.
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from models.audit import AuditRecord
from models.enums import AuditStatus
from services.render_values import NOT_SPECIFIED, humanize, is_blank

logger = logging.getLogger(__name__)


def _label(value: Optional[str]) -> str:
    # single_detached -> Single Detached; blanks count as not specified
    if is_blank(value):
        return NOT_SPECIFIED
    return humanize(value.strip()).title()


def _sorted(counter: Counter) -> Dict[str, int]:
    return dict(sorted(counter.items()))


def summarize(records: Iterable[AuditRecord]) -> Dict[str, Any]:
    records = list(records)
    by_status = Counter({status.value: 0 for status in AuditStatus})
    by_status.update(record.status.value for record in records)

    completed: List[AuditRecord] = [r for r in records if r.status == AuditStatus.completed]
    by_audit_type: Counter = Counter()
    by_home_type: Counter = Counter()
    by_province: Counter = Counter()
    by_heating_fuel: Counter = Counter()
    by_foundation_type: Counter = Counter()

    for record in completed:
        by_audit_type[_label(record.audit_type)] += 1
        by_home_type[_label(record.home_type)] += 1
        by_province[record.customer_province.strip() if not is_blank(record.customer_province) else NOT_SPECIFIED] += 1
        by_heating_fuel[_label(record.heating_info.source)] += 1
        for foundation in record.foundation_info.foundation_type or []:
            by_foundation_type[_label(foundation)] += 1

    total = len(records)
    completion_rate = round(len(completed) / total * 100, 1) if total else 0.0
    logger.info(f"Program summary over {total} audits ({len(completed)} completed)")

    return {
        "total_audits": total,
        "by_status": dict(by_status),
        "completion_rate": completion_rate,
        "by_audit_type": _sorted(by_audit_type),
        "by_home_type": _sorted(by_home_type),
        "by_province": _sorted(by_province),
        "by_heating_fuel": _sorted(by_heating_fuel),
        "by_foundation_type": _sorted(by_foundation_type),
    }
