"""
HOT2000 export tests
"""
from datetime import datetime, timezone

import pytest

from models.audit import AuditRecord
from models.enums import AuditStatus
from services.h2k_codec import Hot2000Codec

GENERATED_AT = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

EXPECTED_HEADERS = [
    "IDENTIFICATION",
    "ELIGIBILITY_CRITERIA",
    "PRE_AUDIT_DISCUSSION",
    "ATYPICAL_LOADS",
    "PROGRAM_INFORMATION",
    "HOUSE_MEASUREMENTS",
    "WALLS",
    "FOUNDATION",
    "WINDOWS",
    "DOORS",
    "CEILING",
    "HEATING_PRIMARY",
    "DHW_PRIMARY",
    "VENTILATION",
    "SOLAR_PV",
    "SOLAR_DHW",
    "BLOWER_DOOR_TEST",
    "DEPRESSURIZATION_TEST",
    "AUDIT_COMPLETION",
    "END_OF_FILE",
]


@pytest.fixture
def codec():
    return Hot2000Codec(evaluator_name="Test Evaluator")


@pytest.fixture
def record():
    return AuditRecord.model_validate({
        "id": "audit-42",
        "status": "in_progress",
        "customerFirstName": "Marie",
        "customerLastName": "Bélanger",
        "customerCity": "Moncton",
        "customerProvince": "NB",
        "auditDate": "2024-04-30",
        "houseInfo": {"houseType": "2_storey", "aboveGradeHeight": "8.5", "aboveGradeHeightUnit": "ft"},
        "foundationInfo": {"foundationType": ["basement"]},
        "wallsInfo": {
            "cavityInsulation": ["R22", "R24"],
            "floors": [
                {"id": "basement", "name": "Basement", "wallHeight": "8.500", "wallHeightUnit": "ft"},
                {"id": "main", "name": "Main Floor"},
            ],
        },
        "windowsInfo": {"gasFill": "argon", "glazing": "3"},
        "heatingInfo": {"heatingSystemType": ["heat_pump"], "source": "geothermal"},
        "eligibilityCriteria": {"registered": True, "documents": "no"},
        "renewablesInfo": {"solarPv": {"present": "yes", "moduleType": ["mono_si"]}},
    })


def lines_of(content):
    return content.split("\n")


def value_of(content, key, after_header=None):
    lines = lines_of(content)
    start = lines.index(f"[{after_header}]") if after_header else 0
    for line in lines[start:]:
        if line.startswith(f"{key}="):
            return line.split("=", 1)[1]
    raise KeyError(key)


def test_output_is_deterministic(codec, record):
    first = codec.encode(record, GENERATED_AT)
    second = codec.encode(record.model_copy(deep=True), GENERATED_AT)
    assert first == second
    assert codec.export(record, GENERATED_AT).data == first.encode("ascii")


def test_header_and_terminator(codec, record):
    content = codec.encode(record, GENERATED_AT)
    lines = lines_of(content)
    assert lines[0] == "# HOT2000 v11.10b Input File"
    assert lines[2] == "# Generated on: 2024-05-01T12:00:00Z"
    assert lines[3] == "# Audit ID: audit-42"
    assert content.endswith("[END_OF_FILE]\n")


def test_sections_appear_in_fixed_order(codec, record):
    headers = [line[1:-1] for line in lines_of(codec.encode(record, GENERATED_AT)) if line.startswith("[")]
    assert headers == EXPECTED_HEADERS


def test_multi_select_renders_comma_joined(codec, record):
    content = codec.encode(record, GENERATED_AT)
    assert "CavityInsulation=R22,R24" in lines_of(content)


def test_every_value_is_non_empty_for_empty_record(codec):
    content = codec.encode(AuditRecord(id="empty-1"), GENERATED_AT)
    for line in lines_of(content):
        if "=" in line and not line.startswith("#"):
            key, value = line.split("=", 1)
            assert value.strip(), f"{key} rendered empty"
            assert value != "undefined"


def test_absent_fields_render_defaults(codec):
    content = codec.encode(AuditRecord(id="empty-1"), GENERATED_AT)
    assert value_of(content, "CavityInsulation") == "R22"
    assert value_of(content, "HouseName") == "Not specified"
    assert value_of(content, "HouseType") == "Bungalow"
    assert value_of(content, "EvaluationDate") == "2024-05-01"
    assert value_of(content, "Height") == "2.4"
    assert value_of(content, "MainFloorWallHeight") == "Not specified"
    assert value_of(content, "SystemPresent", "SOLAR_PV") == "No"
    assert value_of(content, "SystemPresent", "SOLAR_DHW") == "No"
    assert value_of(content, "TestPerformed", "BLOWER_DOOR_TEST") == "No"
    assert value_of(content, "AreasOfLeakage") == "None specified"


def test_vocabulary_mapping_and_pass_through(codec, record):
    content = codec.encode(record, GENERATED_AT)
    assert value_of(content, "HouseType") == "Two-storey"
    assert value_of(content, "StoreysAboveGrade") == "2"
    assert value_of(content, "StoreysBelowGrade") == "1"
    assert value_of(content, "SystemType") == "Heat pump"
    # Unknown fuel passes through unchanged
    assert value_of(content, "FuelType", "HEATING_PRIMARY") == "geothermal"


def test_boolean_rendering(codec, record):
    content = codec.encode(record, GENERATED_AT)
    assert value_of(content, "RegisteredWithUtility") == "Yes"
    assert value_of(content, "DocumentsAvailable") == "No"
    assert value_of(content, "StoreyRequirement") == "No"
    # Free text is not a yes/no answer
    assert value_of(content, "GasFill") == "argon"
    assert value_of(content, "UValue", "WINDOWS") == "0.25"


def test_heights(codec, record):
    content = codec.encode(record, GENERATED_AT)
    assert value_of(content, "Height") == "2.591"
    assert value_of(content, "BasementWallHeight") == "8.500ft"
    assert value_of(content, "MainFloorWallHeight") == "Not specified"


def test_solar_pv_block_when_present(codec, record):
    content = codec.encode(record, GENERATED_AT)
    assert value_of(content, "SystemPresent", "SOLAR_PV") == "Yes"
    assert value_of(content, "ModuleType") == "mono_si"
    assert value_of(content, "PanelArea") == "20"


def test_output_is_ascii(codec, record):
    content = codec.encode(record, GENERATED_AT)
    content.encode("ascii")
    assert "HouseName=Marie Belanger Residence" in lines_of(content)


def test_completion_section(codec, record):
    completed = record.model_copy(update={"status": AuditStatus.completed})
    content = codec.encode(completed, GENERATED_AT)
    assert value_of(content, "AuditStatus") == "completed"
    assert value_of(content, "AuditCompleted") == "Yes"
    assert value_of(content, "EvaluatorSignature") == "Test Evaluator"


def test_filename(codec, record):
    assert codec.filename(record) == "Belanger_audit-42.h2k"
    assert codec.filename(AuditRecord(id="abc-1")) == "abc-1_abc-1.h2k"
