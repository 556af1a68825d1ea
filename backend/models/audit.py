"""
Audit record model: the canonical nested structure for one energy audit.

Each section is an explicit pydantic model with optional fields and camelCase
wire aliases matching the JSON the field UI sends and the database stores.
Unknown keys are preserved so that nothing a client saves is silently lost.
Sections are updated independently with a shallow, last-write-wins merge.
"""

import json
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Type
from uuid import uuid4

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

from models.enums import AuditStatus, HeightUnit
from services.error_types import MalformedSectionError, ValidationError, log_error_with_context
from services.units import ABOVE_GRADE_KEYS, WALL_HEIGHT_KEYS, reconcile_dual_unit

logger = logging.getLogger(__name__)


def _to_text(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def _to_list(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        # String sets keep first-seen order
        seen: List[str] = []
        for item in value:
            text = _to_text(item)
            if isinstance(text, str) and text and text not in seen:
                seen.append(text)
        return seen
    return value


def _to_flag(value: Any) -> Any:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("yes", "true", "1", "on"):
            return True
        if lowered in ("no", "false", "0", "off", ""):
            return False
    return value


FormText = Annotated[Optional[str], BeforeValidator(_to_text)]
FormList = Annotated[Optional[List[str]], BeforeValidator(_to_list)]
Flag = Annotated[Optional[bool], BeforeValidator(_to_flag)]


def _has_content(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, dict):
        return any(_has_content(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(_has_content(v) for v in value)
    return True


class SectionModel(BaseModel):
    """Base for camelCase-keyed sections and sub-objects"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def is_empty(self) -> bool:
        return not _has_content(self.to_payload())


class ChecklistModel(SectionModel):
    """Checklist sections are keyed by their snake_case option keys"""
    model_config = ConfigDict(alias_generator=None, populate_by_name=True, extra="allow")

    def selected(self) -> List[str]:
        return [name for name in type(self).model_fields if getattr(self, name) is True]


# Pre-audit information

class EligibilityCriteria(ChecklistModel):
    registered: Flag = None
    documents: Flag = None
    storeys: Flag = None
    size: Flag = None
    foundation: Flag = None
    mechanical: Flag = None
    doors_windows: Flag = None
    envelope: Flag = None
    renovations: Flag = None
    ashes: Flag = None
    electrical: Flag = None


class PreAuditDiscussion(ChecklistModel):
    authorization: Flag = None
    process: Flag = None
    access: Flag = None
    documents: Flag = None


class AtypicalLoads(ChecklistModel):
    deicing: Flag = None
    lighting: Flag = None
    hot_tub: Flag = None
    air_conditioner: Flag = None
    pool: Flag = None


# House information

class HouseInfo(SectionModel):
    house_type: FormText = None
    year_built: FormText = None
    above_grade_height: FormText = None
    above_grade_height_unit: FormText = None
    above_grade_feet: FormText = None
    above_grade_inches: FormText = None
    front_orientation: FormText = None


class FoundationInfo(SectionModel):
    foundation_type: FormList = None
    crawlspace_type: FormText = None
    sheathing_type: FormText = None
    sheathing_thickness: FormText = None
    wall_height: FormText = None
    wall_height_unit: FormText = None
    average_height_above_grade: FormText = None
    pony_wall: FormText = None
    corners: FormText = None
    walls: FormText = None
    interior_walls: FormList = None
    interior_wall_construction: FormText = None
    framing_spacing: FormList = None
    insulation: FormText = None
    insulation_thickness: FormText = None
    slab_insulation: FormText = None
    slab_insulation_type: FormText = None
    slab_insulation_thickness: FormText = None
    slab_heated: FormText = None


FIXED_FLOORS = (("basement", "Basement"), ("main", "Main Floor"))
FIXED_FLOOR_NAMES = dict(FIXED_FLOORS)


def positional_floor_id(index: int) -> str:
    if index < len(FIXED_FLOORS):
        return FIXED_FLOORS[index][0]
    return f"floor-{index + 1}"


class FloorRecord(SectionModel):
    id: Optional[str] = None
    name: FormText = None
    wall_height: FormText = None
    wall_height_unit: FormText = None
    wall_height_feet: FormText = None
    wall_height_inches: FormText = None


class PerFloorValues(SectionModel):
    main: FormText = None
    second: FormText = None
    third: FormText = None


class WallsInfo(SectionModel):
    floors: List[FloorRecord] = Field(default_factory=list)
    wall_framing: FormText = None
    centres: FormText = None
    cavity_insulation: FormList = None
    exterior_insulation_type: FormList = None
    exterior_insulation_thickness: FormText = None
    exterior_sheathing: FormText = None
    sheathing_thickness: FormText = None
    exterior_finish: FormText = None
    exterior_finish_other: FormText = None
    studs_corner: FormText = None
    corners: PerFloorValues = Field(default_factory=PerFloorValues)
    intersections: PerFloorValues = Field(default_factory=PerFloorValues)
    stud_corner_type: FormList = None

    @model_validator(mode="after")
    def _ensure_fixed_floors(self) -> "WallsInfo":
        # Entries sent without an id take the id of their position
        taken = {floor.id for floor in self.floors if floor.id}
        for index, floor in enumerate(self.floors):
            if floor.id:
                continue
            floor_id = positional_floor_id(index)
            if floor_id in taken:
                floor_id = f"floor-{uuid4().hex[:12]}"
            floor.id = floor_id
            taken.add(floor_id)

        by_id = {floor.id: floor for floor in self.floors}
        fixed = []
        for floor_id, name in FIXED_FLOORS:
            floor = by_id.get(floor_id) or FloorRecord(id=floor_id, wall_height_unit=HeightUnit.meters.value)
            if not floor.name:
                floor.name = name
            fixed.append(floor)
        # Basement and main always lead, other floors keep their order
        self.floors = fixed + [floor for floor in self.floors if floor.id not in FIXED_FLOOR_NAMES]
        return self


class CeilingInfo(SectionModel):
    attic_framing: FormText = None
    attic_insulation_type: FormList = None
    attic_insulation_thickness: FormText = None
    ceiling_type: FormText = None
    spacing: FormText = None


class WindowsInfo(SectionModel):
    frame: FormText = None
    low_e_coating: FormText = Field(default=None, alias="lowECoating")
    gas_fill: FormText = None
    lintel_type: FormText = None
    glazing: FormText = None


class DoorsInfo(SectionModel):
    skin: FormText = None
    insulation: FormText = None


class CfmReading(SectionModel):
    cfm: FormText = None


class VentilationDevices(SectionModel):
    bath_fan: CfmReading = Field(default_factory=CfmReading)
    range_hood: CfmReading = Field(default_factory=CfmReading)
    utility_fan: CfmReading = Field(default_factory=CfmReading)


class HrvCfm(SectionModel):
    supply: FormText = None
    exhaust: FormText = None


class FanPower(SectionModel):
    at_0c: FormText = Field(default=None, alias="at0C")
    at_minus25: FormText = Field(default=None, alias="atMinus25")


class SensibleEfficiency(SectionModel):
    at_0c: FormText = Field(default=None, alias="at0C")
    at_minus25c: FormText = Field(default=None, alias="atMinus25C")


class BathFanDetails(SectionModel):
    manufacturer: FormText = None
    model: FormText = None
    exhaust_flow: FormText = None
    fan_power: FormText = None


class UtilityFanDetails(SectionModel):
    manufacturer: FormText = None
    flow_rate: FormText = None


class RangeHoodDetails(SectionModel):
    manufacturer: FormText = None


class VentilationInfo(SectionModel):
    ventilation_type: FormText = None
    device: VentilationDevices = Field(default_factory=VentilationDevices)
    hrv_manufacturer: FormText = None
    hrv_model: FormText = None
    hvi_certified: FormText = None
    hrv_cfm: HrvCfm = Field(default_factory=HrvCfm)
    fan_power: FanPower = Field(default_factory=FanPower)
    sensible_efficiency: SensibleEfficiency = Field(default_factory=SensibleEfficiency)
    bath_fan_details: BathFanDetails = Field(default_factory=BathFanDetails)
    utility_fan_details: UtilityFanDetails = Field(default_factory=UtilityFanDetails)
    range_hood_details: RangeHoodDetails = Field(default_factory=RangeHoodDetails)


class RatedEfficiency(SectionModel):
    overall: FormText = None
    afue: FormText = None
    steady_state: FormText = None


class HeatingInfo(SectionModel):
    heating_system_type: FormList = None
    source: FormText = None
    manufacturer: FormText = None
    model: FormText = None
    rated_efficiency: RatedEfficiency = Field(default_factory=RatedEfficiency)
    ignition_type: FormText = None
    automatic_vent_damper: FormText = None
    dedicated_combustion_air_duct: FormText = None
    fan_pump_motor_type: FormText = None
    venting_configuration: FormText = None
    heat_pump_manufacturer: FormText = None
    heat_pump_model: FormText = None
    supplementary_heating_system: FormText = None
    ac_coil: FormText = None
    condenser_unit: FormText = None


class DrainWaterHeatRecovery(SectionModel):
    present: FormText = None
    manufacturer: FormText = None
    model: FormText = None
    size: FormText = None


class DomesticHotWaterInfo(SectionModel):
    domestic_hot_water_type: FormText = None
    fuel: FormText = None
    manufacturer: FormText = None
    model: FormText = None
    tank_volume: FormText = None
    efficiency_factor: FormText = None
    cop: FormText = None
    pilot: FormText = None
    co_vented: FormText = None
    flue_diameter: FormText = None
    showers_to_main_stack: FormText = None
    dwhr: DrainWaterHeatRecovery = Field(default_factory=DrainWaterHeatRecovery)
    dwhr_to_shower: FormText = None
    low_flush_toilets: FormText = None


class SolarPv(SectionModel):
    present: FormText = None
    manufacturer: FormText = None
    area: FormText = None
    slope: FormText = None
    azimuth: FormText = None
    module_type: FormList = None


class SolarDhw(SectionModel):
    manufacturer: FormText = None
    model: FormText = None
    csa_f379_rating: FormText = Field(default=None, alias="csaF379Rating")
    slope: FormText = None
    azimuth: FormText = None


class RenewablesInfo(SectionModel):
    solar_pv: SolarPv = Field(default_factory=SolarPv)
    solar_dhw: SolarDhw = Field(default_factory=SolarDhw)


class LeakageAreas(ChecklistModel):
    rims: Flag = None
    electric_outlet: Flag = None
    doors: Flag = None
    wall_intersections: Flag = None
    baseboards: Flag = None
    ceiling_fixtures: Flag = None
    window_frames: Flag = None
    electric_panel: Flag = None
    attic_access: Flag = None


class BlowerDoorTest(SectionModel):
    areas_of_leakage: LeakageAreas = Field(default_factory=LeakageAreas)
    window_component: FormText = None
    other: FormText = None


class DepressurizationTest(SectionModel):
    window_leakage: FormText = None
    other_leakage: FormText = None


# Section attribute name -> model, in form order
SECTION_MODELS: Dict[str, Type[SectionModel]] = {
    "eligibility_criteria": EligibilityCriteria,
    "pre_audit_discussion": PreAuditDiscussion,
    "atypical_loads": AtypicalLoads,
    "house_info": HouseInfo,
    "foundation_info": FoundationInfo,
    "walls_info": WallsInfo,
    "ceiling_info": CeilingInfo,
    "windows_info": WindowsInfo,
    "doors_info": DoorsInfo,
    "ventilation_info": VentilationInfo,
    "heating_info": HeatingInfo,
    "domestic_hot_water_info": DomesticHotWaterInfo,
    "renewables_info": RenewablesInfo,
    "blower_door_test": BlowerDoorTest,
    "depressurization_test": DepressurizationTest,
}

SCALAR_FIELDS = (
    "customer_first_name",
    "customer_last_name",
    "customer_email",
    "customer_phone",
    "customer_address",
    "customer_city",
    "customer_province",
    "customer_postal_code",
    "audit_type",
    "home_type",
    "audit_date",
)

_SECTION_LOOKUP = {**{name: name for name in SECTION_MODELS}, **{to_camel(name): name for name in SECTION_MODELS}}
_SCALAR_LOOKUP = {**{name: name for name in SCALAR_FIELDS}, **{to_camel(name): name for name in SCALAR_FIELDS}}


def resolve_section(name: str) -> str:
    """Map a wire (camelCase) or attribute (snake_case) section name to its attribute"""
    try:
        return _SECTION_LOOKUP[name]
    except KeyError:
        raise ValidationError(f"Unknown audit section: {name}", {"section": name})


def resolve_scalar(name: str) -> Optional[str]:
    return _SCALAR_LOOKUP.get(name)


def load_section(section: str, raw: Any, audit_id: Optional[str] = None) -> SectionModel:
    """
    Parse a stored section, treating anything unreadable as an empty section.

    A missing section is simply empty; a section that is not a JSON object
    (or does not fit the model) is logged as malformed and also read as empty.
    """
    model = SECTION_MODELS[section]
    if raw is None or raw == "":
        return model()
    try:
        if isinstance(raw, (str, bytes)):
            raw = json.loads(raw)
        if not isinstance(raw, dict):
            raise MalformedSectionError(section, f"Section {section} is not an object", {"type": type(raw).__name__})
        return model.model_validate(raw)
    except (json.JSONDecodeError, PydanticValidationError) as e:
        error = MalformedSectionError(section, f"Section {section} could not be parsed", {"reason": str(e)[:200]})
    except MalformedSectionError as e:
        error = e
    log_error_with_context(error, {"audit_id": audit_id, "section": section})
    return model()


class AuditRecord(BaseModel):
    """The full nested data structure describing one home energy audit"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    user_id: Optional[int] = None
    status: AuditStatus = AuditStatus.draft

    customer_first_name: FormText = None
    customer_last_name: FormText = None
    customer_email: FormText = None
    customer_phone: FormText = None
    customer_address: FormText = None
    customer_city: FormText = None
    customer_province: FormText = None
    customer_postal_code: FormText = None
    audit_type: FormText = None
    home_type: FormText = None
    audit_date: FormText = None

    eligibility_criteria: EligibilityCriteria = Field(default_factory=EligibilityCriteria)
    pre_audit_discussion: PreAuditDiscussion = Field(default_factory=PreAuditDiscussion)
    atypical_loads: AtypicalLoads = Field(default_factory=AtypicalLoads)
    house_info: HouseInfo = Field(default_factory=HouseInfo)
    foundation_info: FoundationInfo = Field(default_factory=FoundationInfo)
    walls_info: WallsInfo = Field(default_factory=WallsInfo)
    ceiling_info: CeilingInfo = Field(default_factory=CeilingInfo)
    windows_info: WindowsInfo = Field(default_factory=WindowsInfo)
    doors_info: DoorsInfo = Field(default_factory=DoorsInfo)
    ventilation_info: VentilationInfo = Field(default_factory=VentilationInfo)
    heating_info: HeatingInfo = Field(default_factory=HeatingInfo)
    domestic_hot_water_info: DomesticHotWaterInfo = Field(default_factory=DomesticHotWaterInfo)
    renewables_info: RenewablesInfo = Field(default_factory=RenewablesInfo)
    blower_door_test: BlowerDoorTest = Field(default_factory=BlowerDoorTest)
    depressurization_test: DepressurizationTest = Field(default_factory=DepressurizationTest)

    @classmethod
    def from_row(cls, row: Any) -> "AuditRecord":
        """Build a record from a persisted audit row, tolerating bad sections"""
        audit_id = getattr(row, "id", None)
        values: Dict[str, Any] = {
            "id": audit_id,
            "user_id": getattr(row, "user_id", None),
            "status": getattr(row, "status", None) or AuditStatus.draft.value,
        }
        for name in SCALAR_FIELDS:
            values[name] = getattr(row, name, None)
        for name in SECTION_MODELS:
            values[name] = load_section(name, getattr(row, name, None), audit_id)
        return cls.model_validate(values)

    @property
    def customer_name(self) -> str:
        return " ".join(part for part in (self.customer_first_name, self.customer_last_name) if part).strip()

    def section(self, name: str) -> SectionModel:
        return getattr(self, resolve_section(name))

    def section_payload(self, name: str) -> Dict[str, Any]:
        return self.section(name).to_payload()

    def to_row_values(self) -> Dict[str, Any]:
        """Column values for persisting every scalar and section"""
        values: Dict[str, Any] = {name: getattr(self, name) for name in SCALAR_FIELDS}
        for name in SECTION_MODELS:
            values[name] = getattr(self, name).to_payload()
        return values

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def _reconcile_floors(previous: List[Dict[str, Any]], floors: Any) -> Any:
    if not isinstance(floors, list):
        return floors
    previous_by_id = {floor.get("id"): floor for floor in previous if isinstance(floor, dict)}
    reconciled = []
    for index, floor in enumerate(floors):
        if isinstance(floor, dict):
            # Id-less entries are matched by position, as the model assigns their ids
            floor_id = floor.get("id") or positional_floor_id(index)
            floor = reconcile_dual_unit(previous_by_id.get(floor_id, {}), floor, WALL_HEIGHT_KEYS)
        reconciled.append(floor)
    return reconciled


def apply_section_update(record: AuditRecord, section_name: str, partial: Dict[str, Any]) -> AuditRecord:
    """
    Merge a partial section into the record by shallow key overwrite.

    Arrays and nested objects in ``partial`` replace the stored ones wholesale.
    Dual-unit heights touched by the update are reconciled so the decimal
    value and the feet/inches pair agree. Returns a new record.
    """
    section = resolve_section(section_name)
    if not isinstance(partial, dict):
        raise ValidationError(f"Section update for {section} must be an object", {"section": section})

    current = getattr(record, section).to_payload()
    merged = {**current, **partial}

    if section == "house_info":
        merged = reconcile_dual_unit(current, merged, ABOVE_GRADE_KEYS)
    elif section == "walls_info" and "floors" in partial:
        merged["floors"] = _reconcile_floors(current.get("floors", []), merged.get("floors"))

    try:
        updated = SECTION_MODELS[section].model_validate(merged)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid data for section {section}", {"errors": e.errors(include_url=False)})
    return record.model_copy(update={section: updated})


def apply_scalar_update(record: AuditRecord, fields: Dict[str, Any]) -> AuditRecord:
    """Overwrite top-level customer/property scalars; unknown keys are rejected"""
    updates: Dict[str, Any] = {}
    for key, value in fields.items():
        name = resolve_scalar(key)
        if name is None:
            raise ValidationError(f"Unknown audit field: {key}", {"field": key})
        updates[name] = _to_text(value)
    # Re-validate so the FormText coercion applies to the new values
    data = record.model_dump()
    data.update(updates)
    return AuditRecord.model_validate(data)


def _next_floor_name(floors: List[FloorRecord]) -> str:
    # Basement does not count as a storey
    number = len(floors) - 1
    if number == 1:
        return "Second Floor"
    if number == 2:
        return "Third Floor"
    return f"Floor {number + 1}"


def add_floor(record: AuditRecord, name: Optional[str] = None) -> Tuple[AuditRecord, FloorRecord]:
    floors = list(record.walls_info.floors)
    floor = FloorRecord(
        id=f"floor-{uuid4().hex[:12]}",
        name=name or _next_floor_name(floors),
        wall_height_unit=HeightUnit.meters.value,
    )
    walls = record.walls_info.model_copy(update={"floors": floors + [floor]})
    return record.model_copy(update={"walls_info": walls}), floor


def remove_floor(record: AuditRecord, floor_id: str) -> AuditRecord:
    if floor_id in FIXED_FLOOR_NAMES:
        raise ValidationError(f"Floor {floor_id} cannot be removed", {"floor_id": floor_id})
    floors = [floor for floor in record.walls_info.floors if floor.id != floor_id]
    if len(floors) == len(record.walls_info.floors):
        raise ValidationError(f"Floor {floor_id} does not exist", {"floor_id": floor_id})
    walls = record.walls_info.model_copy(update={"floors": floors})
    return record.model_copy(update={"walls_info": walls})
