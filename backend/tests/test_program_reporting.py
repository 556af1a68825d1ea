from models.audit import AuditRecord
from services.program_reporting import summarize


def record(status, **sections):
    return AuditRecord.model_validate({"status": status, **sections})


def test_empty_program():
    summary = summarize([])
    assert summary["total_audits"] == 0
    assert summary["by_status"] == {"draft": 0, "in_progress": 0, "completed": 0}
    assert summary["completion_rate"] == 0.0
    assert summary["by_heating_fuel"] == {}


def test_breakdowns_count_completed_audits_only():
    records = [
        record("completed", auditType="before_upgrade", homeType="single_detached", customerProvince="NB",
               heatingInfo={"source": "natural_gas"}, foundationInfo={"foundationType": ["basement", "slab"]}),
        record("completed", auditType="after_upgrade", customerProvince=" NB ",
               heatingInfo={"source": "electric"}, foundationInfo={"foundationType": ["basement"]}),
        record("in_progress", auditType="before_upgrade", heatingInfo={"source": "oil"}),
    ]

    summary = summarize(records)

    assert summary["total_audits"] == 3
    assert summary["by_status"] == {"draft": 0, "in_progress": 1, "completed": 2}
    assert summary["completion_rate"] == 66.7
    assert summary["by_audit_type"] == {"After Upgrade": 1, "Before Upgrade": 1}
    assert summary["by_home_type"] == {"Not specified": 1, "Single Detached": 1}
    assert summary["by_province"] == {"NB": 2}
    assert summary["by_heating_fuel"] == {"Electric": 1, "Natural Gas": 1}
    assert summary["by_foundation_type"] == {"Basement": 2, "Slab": 1}
