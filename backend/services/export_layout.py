"""
Field layout shared by both exporters.

EXPORT_SECTIONS fixes the section order once. Each section builds its rows
(key, rendered value) from the audit record; the structured-text codec
writes them as ``Key=Value`` lines and the report compiler lays the same
rows out as label/value tables, so defaults cannot drift between the two.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

from models.audit import AuditRecord, FloorRecord
from models.enums import AuditStatus, AuditType, HeightUnit, HomeType
from services.render_values import (
    NOT_SPECIFIED,
    humanize,
    map_vocabulary,
    parse_flag,
    render_bool,
    render_list,
    render_value,
)
from services.units import format_decimal, height_in_meters

# Controlled vocabularies of the modelling tool
HOUSE_TYPES = {
    "bungalow": "Bungalow",
    "2_storey": "Two-storey",
    "bi_level": "Bi-level",
    "split_level": "Split-level",
}

HEATING_SYSTEMS = {
    "furnace": "Forced air furnace",
    "boiler": "Boiler",
    "combo": "Combination heating/DHW",
    "heat_pump": "Heat pump",
    "integrated": "Integrated heating",
}

FUEL_SOURCES = {
    "ng": "Natural gas",
    "nat_gas": "Natural gas",
    "natural_gas": "Natural gas",
    "propane": "Propane",
    "electric": "Electricity",
    "electricity": "Electricity",
    "oil": "Oil",
}

STOREYS_ABOVE_GRADE = {"2_storey": "2", "bi_level": "1.5"}

AUDIT_TYPE_LABELS = {
    AuditType.before_upgrade.value: "Pre-Retrofit Assessment",
    AuditType.after_upgrade.value: "Post-Retrofit Verification",
}
DEFAULT_AUDIT_TYPE_LABEL = "Residential Energy Assessment"

HOME_TYPE_LABELS = {
    HomeType.single_detached.value: "Single Detached",
    HomeType.attached.value: "Attached",
    HomeType.row_end.value: "Row End Unit",
    HomeType.row_mid.value: "Row Mid Unit",
}

STATUS_LABELS = {
    AuditStatus.draft.value: "Draft",
    AuditStatus.in_progress.value: "In Progress",
    AuditStatus.completed.value: "Completed",
}

PHOTO_CATEGORY_TITLES = {
    "exterior": "Exterior",
    "heating_system": "Heating System",
    "hot_water": "Hot Water",
    "hrv_erv": "HRV/ERV",
    "renewables": "Renewables",
    "attic_insulation": "Attic Insulation",
    "blower_door": "Blower Door",
}

WINDOW_U_VALUES = {"3": "0.25", "2": "0.35"}
DEFAULT_WINDOW_U_VALUE = "0.50"


@dataclass(frozen=True)
class ExportContext:
    """Everything a section needs to render: the record and the generation instant"""
    record: AuditRecord
    generated_at: datetime
    evaluator_name: str

    @property
    def generated_date(self) -> str:
        return self.generated_at.date().isoformat()


class Row(NamedTuple):
    key: str
    value: str
    label: Optional[str] = None

    @property
    def display_label(self) -> str:
        return self.label or humanize(self.key)


class Heading(NamedTuple):
    text: str


SectionRows = List[Union[Row, Heading]]


@dataclass(frozen=True)
class Checklist:
    """An enumerated option set; the report always renders every option"""
    key: str
    title: str
    section: str
    options: Tuple[Tuple[str, str], ...]
    selected: Callable[[AuditRecord], Set[str]]
    # The checklist shows everything the section holds, so the report skips its rows
    replaces_rows: bool = False

    def render(self, record: AuditRecord) -> List[Tuple[str, bool]]:
        chosen = self.selected(record)
        return [(label, code in chosen) for code, label in self.options]


def _flags(section_name: str) -> Callable[[AuditRecord], Set[str]]:
    def selected(record: AuditRecord) -> Set[str]:
        return set(getattr(record, section_name).selected())
    return selected


def _members(read: Callable[[AuditRecord], Optional[Sequence[str]]]) -> Callable[[AuditRecord], Set[str]]:
    # Multi-select sections store the chosen option codes as a list
    def selected(record: AuditRecord) -> Set[str]:
        return set(read(record) or [])
    return selected


CHECKLISTS: Tuple[Checklist, ...] = (
    Checklist("eligibility", "Eligibility Criteria", "eligibility_criteria", (
        ("registered", "The homeowner has registered in the Program"),
        ("documents", "Check possible needed documents (Property Tax Roll#)"),
        ("storeys", "Home is no more than 3 storeys above grade"),
        ("size", "Home is less than 600 m²"),
        ("foundation", "Home is on Permanent Foundation"),
        ("mechanical", "Mechanical is present & operating at time of evaluation"),
        ("doors_windows", "All Doors & Windows are installed and intact (allowed to seal off 1)"),
        ("envelope", "Building Envelope is intact (exterior finishes not a component of air barrier exempt)"),
        ("renovations", "No current renovations to building envelope underway"),
        ("ashes", "Ashes removed from Fireplace (if applicable)"),
        ("electrical", "Permanent 15A 120V electrical power source"),
    ), _flags("eligibility_criteria"), replaces_rows=True),
    Checklist("pre_audit", "Pre-Audit Discussion", "pre_audit_discussion", (
        ("authorization", "Presented Evaluation Authorization Form & customer signed"),
        ("process", "Explain process of the service customer chose"),
        ("access", "Confirm location & access for mechanical room, crawlspaces, attic access"),
        ("documents", "Ask Homeowner for docs for mechanical & any components (windows, renewables, builder plans)"),
    ), _flags("pre_audit_discussion"), replaces_rows=True),
    Checklist("atypical_loads", "Atypical Loads", "atypical_loads", (
        ("deicing", "Deicing Cables"),
        ("lighting", "Extensive Exterior Lighting"),
        ("hot_tub", "Hot Tub"),
        ("air_conditioner", "Room Air Conditioner"),
        ("pool", "Swimming Pool"),
    ), _flags("atypical_loads"), replaces_rows=True),
    Checklist("foundation_type", "Foundation Type", "foundation_info", (
        ("basement", "Basement"),
        ("crawlspace", "Crawlspace"),
        ("slab", "Slab"),
    ), _members(lambda r: r.foundation_info.foundation_type)),
    Checklist("cavity_insulation", "Cavity Insulation", "walls_info", (
        ("R18", "R18"),
        ("R19", "R19"),
        ("R22", "R22"),
        ("R24", "R24"),
    ), _members(lambda r: r.walls_info.cavity_insulation)),
    Checklist("exterior_insulation", "Exterior Insulation Type", "walls_info", (
        ("eps", "EPS"),
        ("xps", "XPS"),
        ("mineral_wool", "Mineral Wool"),
    ), _members(lambda r: r.walls_info.exterior_insulation_type)),
    Checklist("attic_insulation", "Attic Insulation Type", "ceiling_info", (
        ("fibreglass", "Fibreglass"),
        ("cellulose", "Cellulose"),
        ("foam", "Foam"),
    ), _members(lambda r: r.ceiling_info.attic_insulation_type)),
    Checklist("heating_system", "Heating System Type", "heating_info", (
        ("furnace", "Furnace"),
        ("boiler", "Boiler"),
        ("combo", "Combo"),
        ("integrated", "Integrated"),
        ("csa_p9_11", "CSA P.9-11"),
        ("heat_pump", "Heat Pump"),
    ), _members(lambda r: r.heating_info.heating_system_type)),
    Checklist("solar_modules", "Solar Module Type", "solar_pv", (
        ("mono_si", "Mono-Si"),
        ("poly_si", "Poly-Si"),
        ("a_si", "a-Si"),
        ("cd_te", "CdTe"),
        ("cis", "CIS"),
    ), _members(lambda r: r.renewables_info.solar_pv.module_type)),
    Checklist("leakage_areas", "Areas of Leakage", "blower_door_test", (
        ("rims", "Rims"),
        ("electric_outlet", "Electric Outlet"),
        ("doors", "Doors"),
        ("wall_intersections", "Wall Intersections"),
        ("baseboards", "Baseboards"),
        ("ceiling_fixtures", "Ceiling Fixtures"),
        ("window_frames", "Window Frames"),
        ("electric_panel", "Electric Panel"),
        ("attic_access", "Attic Access"),
    ), lambda r: set(r.blower_door_test.areas_of_leakage.selected())),
)


def checklists_for(section: str) -> List[Checklist]:
    return [checklist for checklist in CHECKLISTS if checklist.section == section]


# Section row builders, in export order

def _identification(ctx: ExportContext) -> SectionRows:
    r = ctx.record
    house = r.house_info
    city_province = ", ".join(part for part in (r.customer_city, r.customer_province) if part)
    foundation_types = r.foundation_info.foundation_type or []
    return [
        Row("HouseName", f"{r.customer_name} Residence" if r.customer_name else NOT_SPECIFIED),
        Row("Builder", NOT_SPECIFIED),
        Row("EvaluatorName", ctx.evaluator_name),
        Row("EvaluationDate", render_value(r.audit_date, ctx.generated_date)),
        Row("ModificationDate", ctx.generated_date),
        Row("WeatherLocation", render_value(city_province)),
        Row("HouseType", map_vocabulary(house.house_type, HOUSE_TYPES, "Bungalow")),
        Row("YearBuilt", render_value(house.year_built, "1980")),
        Row("StoreysBelowGrade", "1" if "basement" in foundation_types else "0"),
        Row("StoreysAboveGrade", STOREYS_ABOVE_GRADE.get(house.house_type or "", "1")),
        Row("Address", render_value(r.customer_address)),
        Row("City", render_value(r.customer_city)),
        Row("Province", render_value(r.customer_province)),
        Row("PostalCode", render_value(r.customer_postal_code)),
        Row("AuditType", render_value(r.audit_type, AuditType.before_upgrade.value)),
        Row("HomeType", render_value(r.home_type, HomeType.single_detached.value)),
    ]


def _eligibility(ctx: ExportContext) -> SectionRows:
    e = ctx.record.eligibility_criteria
    return [
        Row("RegisteredWithUtility", render_bool(e.registered)),
        Row("DocumentsAvailable", render_bool(e.documents)),
        Row("StoreyRequirement", render_bool(e.storeys)),
        Row("SizeRequirement", render_bool(e.size)),
        Row("FoundationRequirement", render_bool(e.foundation)),
        Row("MechanicalRequirement", render_bool(e.mechanical)),
        Row("DoorsWindowsRequirement", render_bool(e.doors_windows)),
        Row("EnvelopeRequirement", render_bool(e.envelope)),
        Row("RenovationsCompliant", render_bool(e.renovations)),
        Row("AshesRemoved", render_bool(e.ashes)),
        Row("ElectricalCompliant", render_bool(e.electrical)),
    ]


def _pre_audit(ctx: ExportContext) -> SectionRows:
    p = ctx.record.pre_audit_discussion
    return [
        Row("AuthorizationObtained", render_bool(p.authorization)),
        Row("ProcessExplained", render_bool(p.process)),
        Row("AccessDiscussed", render_bool(p.access)),
        Row("DocumentsReviewed", render_bool(p.documents)),
    ]


def _atypical_loads(ctx: ExportContext) -> SectionRows:
    a = ctx.record.atypical_loads
    return [
        Row("DeicingCables", render_bool(a.deicing)),
        Row("ExteriorLighting", render_bool(a.lighting)),
        Row("HotTub", render_bool(a.hot_tub)),
        Row("AirConditioner", render_bool(a.air_conditioner)),
        Row("SwimmingPool", render_bool(a.pool)),
    ]


def _program_info(ctx: ExportContext) -> SectionRows:
    return [
        Row("WeatherRegion", "7A"),
        Row("DesignTemperature", "-25"),
        Row("CalculationProcedure", "NBC"),
        Row("BlowerDoorTest", "No" if ctx.record.blower_door_test.is_empty() else "Yes"),
        Row("AirChangesPerHour", "2.5"),
    ]


def _house_measurements(ctx: ExportContext) -> SectionRows:
    house = ctx.record.house_info
    meters = height_in_meters(house.above_grade_height, house.above_grade_height_unit)
    return [
        Row("Length", "12.0"),
        Row("Width", "8.0"),
        Row("Height", format_decimal(meters) if meters is not None else "2.4", "Above Grade Height (m)"),
        Row("Volume", "230.4"),
        Row("Orientation", render_value(house.front_orientation, "S"), "Front Orientation"),
    ]


def floor_key(floor: FloorRecord) -> str:
    """CamelCase key fragment for a floor name ("Main Floor" -> "MainFloor")"""
    words = re.findall(r"[A-Za-z0-9]+", floor.name or floor.id or "")
    return "".join(word[:1].upper() + word[1:] for word in words) or "Floor"


def render_floor_height(floor: FloorRecord) -> str:
    if not (floor.wall_height or "").strip():
        return NOT_SPECIFIED
    return f"{floor.wall_height.strip()}{floor.wall_height_unit or HeightUnit.meters.value}"


def _walls(ctx: ExportContext) -> SectionRows:
    w = ctx.record.walls_info
    rows: SectionRows = [
        Row("WallFraming", render_value(w.wall_framing, "2x6")),
        Row("StudSpacing", render_value(w.centres, "16")),
        Row("CavityInsulation", render_list(w.cavity_insulation, "R22")),
        Row("ExteriorInsulationType", render_list(w.exterior_insulation_type, "None")),
        Row("ExteriorInsulationThickness", render_value(w.exterior_insulation_thickness, "0")),
        Row("ExteriorSheathing", render_value(w.exterior_sheathing, "OSB")),
        Row("SheathingThickness", render_value(w.sheathing_thickness, "7/16")),
        Row("ExteriorFinish", render_value(w.exterior_finish, "Vinyl")),
        Row("ExteriorFinishOther", render_value(w.exterior_finish_other)),
        Row("StudsCorner", render_bool(w.studs_corner)),
        Row("StudCornerType", render_list(w.stud_corner_type, "Standard")),
        Row("MainFloorCorners", render_value(w.corners.main, "Standard")),
        Row("SecondFloorCorners", render_value(w.corners.second, "Standard")),
        Row("ThirdFloorCorners", render_value(w.corners.third, "Standard")),
        Row("MainFloorIntersections", render_value(w.intersections.main, "Standard")),
        Row("SecondFloorIntersections", render_value(w.intersections.second, "Standard")),
        Row("ThirdFloorIntersections", render_value(w.intersections.third, "Standard")),
        Row("FramingFactor", "0.25"),
        Heading("Wall Heights by Floor"),
    ]
    for floor in w.floors:
        rows.append(Row(f"{floor_key(floor)}WallHeight", render_floor_height(floor), f"{floor.name or floor.id} Wall Height"))
    return rows


def _foundation(ctx: ExportContext) -> SectionRows:
    f = ctx.record.foundation_info
    return [
        Row("FoundationType", render_list(f.foundation_type, "Basement")),
        Row("WallConstruction", render_value(f.walls, "Concrete")),
        Row("WallHeight", render_value(f.wall_height, "2.4")),
        Row("WallHeightUnit", render_value(f.wall_height_unit, HeightUnit.meters.value)),
        Row("AverageHeightAboveGrade", render_value(f.average_height_above_grade, "0.2")),
        Row("InsulationType", render_value(f.insulation, "Fibreglass")),
        Row("InsulationThickness", render_value(f.insulation_thickness, "3.5")),
        Row("SheathingType", render_value(f.sheathing_type, "None")),
        Row("SheathingThickness", render_value(f.sheathing_thickness, "0")),
        Row("CrawlspaceType", render_value(f.crawlspace_type, "Vented")),
        Row("PonyWall", render_bool(f.pony_wall)),
        Row("FoundationCorners", render_value(f.corners, "Standard")),
        Row("InteriorWalls", render_list(f.interior_walls, "None")),
        Row("InteriorWallConstruction", render_value(f.interior_wall_construction, "Wood")),
        Row("FramingSpacing", render_list(f.framing_spacing, "16")),
        Row("SlabInsulation", render_bool(f.slab_insulation)),
        Row("SlabInsulationType", render_value(f.slab_insulation_type, "None")),
        Row("SlabInsulationThickness", render_value(f.slab_insulation_thickness, "0")),
        Row("SlabHeated", render_bool(f.slab_heated)),
    ]


def _windows(ctx: ExportContext) -> SectionRows:
    w = ctx.record.windows_info
    glazing = (w.glazing or "").strip()
    return [
        Row("FrameType", render_value(w.frame, "Wood")),
        Row("GlazingLayers", render_value(w.glazing, "2")),
        Row("LowECoating", render_value(w.low_e_coating, "None"), "Low-E Coating"),
        Row("GasFill", render_bool(w.gas_fill)),
        Row("UValue", WINDOW_U_VALUES.get(glazing, DEFAULT_WINDOW_U_VALUE), "U-Value"),
        Row("SHGC", "0.65"),
        Row("VT", "0.70"),
        Row("LintelType", render_value(w.lintel_type, "Single angle steel")),
    ]


def _doors(ctx: ExportContext) -> SectionRows:
    d = ctx.record.doors_info
    return [
        Row("DoorType", render_value(d.skin, "Steel")),
        Row("CoreMaterial", render_value(d.insulation, "Fibreglass")),
        Row("UValue", "0.40", "U-Value"),
        Row("SHGC", "0.65"),
    ]


def _ceiling(ctx: ExportContext) -> SectionRows:
    c = ctx.record.ceiling_info
    return [
        Row("CeilingType", render_value(c.ceiling_type, "Flat")),
        Row("AtticFraming", render_value(c.attic_framing, "Wood")),
        Row("FramingSpacing", render_value(c.spacing, "16")),
        Row("AtticInsulationType", render_list(c.attic_insulation_type, "Fibreglass")),
        Row("AtticInsulationThickness", render_value(c.attic_insulation_thickness, "R40")),
    ]


def _heating(ctx: ExportContext) -> SectionRows:
    h = ctx.record.heating_info
    primary = (h.heating_system_type or [None])[0]
    return [
        Row("SystemType", map_vocabulary(primary, HEATING_SYSTEMS, "Forced air furnace")),
        Row("FuelType", map_vocabulary(h.source, FUEL_SOURCES, "Natural gas")),
        Row("Manufacturer", render_value(h.manufacturer)),
        Row("Model", render_value(h.model)),
        Row("OutputCapacity", "60"),
        Row("InputCapacity", "75"),
        Row("SteadyStateEfficiency", render_value(h.rated_efficiency.steady_state, "80")),
        Row("AFUE", render_value(h.rated_efficiency.afue, "80")),
        Row("OverallEfficiency", render_value(h.rated_efficiency.overall, "78")),
        Row("IgnitionType", render_value(h.ignition_type, "Electric ignition")),
        Row("PilotLight", "Yes" if (h.ignition_type or "").strip().lower() == "pilot" else "No"),
        Row("AutomaticVentDamper", render_value(h.automatic_vent_damper, "No fixed barometric")),
        Row("DedicatedCombustionAirDuct", render_bool(h.dedicated_combustion_air_duct)),
        Row("FanPumpMotorType", render_value(h.fan_pump_motor_type, "PSC motor")),
        Row("VentingConfiguration", render_value(h.venting_configuration, "Induced draft")),
        Row("HeatPumpManufacturer", render_value(h.heat_pump_manufacturer)),
        Row("HeatPumpModel", render_value(h.heat_pump_model)),
        Row("SupplementaryHeatingSystem", render_value(h.supplementary_heating_system)),
        Row("ACCoil", render_value(h.ac_coil), "AC Coil"),
        Row("CondenserUnit", render_value(h.condenser_unit)),
    ]


def _domestic_hot_water(ctx: ExportContext) -> SectionRows:
    d = ctx.record.domestic_hot_water_info
    return [
        Row("DHWType", render_value(d.domestic_hot_water_type, "Conventional tank"), "DHW Type"),
        Row("FuelType", map_vocabulary(d.fuel, FUEL_SOURCES, "Natural gas")),
        Row("Manufacturer", render_value(d.manufacturer)),
        Row("Model", render_value(d.model)),
        Row("TankVolume", render_value(d.tank_volume, "40")),
        Row("EnergyFactor", render_value(d.efficiency_factor, "0.60")),
        Row("COP", render_value(d.cop, "1.0")),
        Row("PilotLight", render_bool(d.pilot)),
        Row("CoVented", render_bool(d.co_vented), "Co-Vented"),
        Row("FlueDiameter", render_value(d.flue_diameter, "4")),
        Row("DWHRPresent", render_bool(d.dwhr.present), "DWHR Present"),
        Row("DWHRManufacturer", render_value(d.dwhr.manufacturer), "DWHR Manufacturer"),
        Row("DWHRModel", render_value(d.dwhr.model), "DWHR Model"),
        Row("DWHRSize", render_value(d.dwhr.size), "DWHR Size"),
        Row("DWHRToShower", render_value(d.dwhr_to_shower), "DWHR To Shower"),
        Row("ShowersToMainStack", render_value(d.showers_to_main_stack, "2")),
        Row("LowFlushToilets", render_value(d.low_flush_toilets, "2")),
    ]


def _ventilation(ctx: ExportContext) -> SectionRows:
    v = ctx.record.ventilation_info
    return [
        Row("VentilationType", render_value(v.ventilation_type, "Exhaust only")),
        Row("HRVManufacturer", render_value(v.hrv_manufacturer)),
        Row("HRVModel", render_value(v.hrv_model)),
        Row("HVICertified", render_bool(v.hvi_certified), "HVI Certified"),
        Row("SupplyCFM", render_value(v.hrv_cfm.supply, "75"), "Supply CFM"),
        Row("ExhaustCFM", render_value(v.hrv_cfm.exhaust, "75"), "Exhaust CFM"),
        Row("FanPowerAt0C", render_value(v.fan_power.at_0c, "75"), "Fan Power at 0C (W)"),
        Row("FanPowerAtMinus25", render_value(v.fan_power.at_minus25, "90"), "Fan Power at -25C (W)"),
        Row("SensibleEfficiencyAt0C", render_value(v.sensible_efficiency.at_0c, "75"), "Sensible Efficiency at 0C (%)"),
        Row("SensibleEfficiencyAtMinus25", render_value(v.sensible_efficiency.at_minus25c, "70"), "Sensible Efficiency at -25C (%)"),
        Heading("Exhaust Fans"),
        Row("BathFanCFM", render_value(v.device.bath_fan.cfm, "50"), "Bath Fan CFM"),
        Row("BathFanManufacturer", render_value(v.bath_fan_details.manufacturer)),
        Row("BathFanModel", render_value(v.bath_fan_details.model)),
        Row("BathFanExhaustFlow", render_value(v.bath_fan_details.exhaust_flow)),
        Row("BathFanPower", render_value(v.bath_fan_details.fan_power)),
        Row("RangeHoodCFM", render_value(v.device.range_hood.cfm, "150"), "Range Hood CFM"),
        Row("RangeHoodManufacturer", render_value(v.range_hood_details.manufacturer)),
        Row("UtilityFanCFM", render_value(v.device.utility_fan.cfm, "100"), "Utility Fan CFM"),
        Row("UtilityFanManufacturer", render_value(v.utility_fan_details.manufacturer)),
        Row("UtilityFanFlowRate", render_value(v.utility_fan_details.flow_rate)),
    ]


def _solar_pv(ctx: ExportContext) -> SectionRows:
    pv = ctx.record.renewables_info.solar_pv
    if not parse_flag(pv.present):
        return [Row("SystemPresent", "No")]
    return [
        Row("SystemPresent", "Yes"),
        Row("Manufacturer", render_value(pv.manufacturer)),
        Row("PanelArea", render_value(pv.area, "20"), "Panel Area (m2)"),
        Row("Slope", render_value(pv.slope, "30")),
        Row("Azimuth", render_value(pv.azimuth, "180")),
        Row("ModuleType", render_list(pv.module_type, "Mono-crystalline silicon")),
    ]


def _solar_dhw(ctx: ExportContext) -> SectionRows:
    dhw = ctx.record.renewables_info.solar_dhw
    if not (dhw.manufacturer or "").strip():
        return [Row("SystemPresent", "No")]
    return [
        Row("SystemPresent", "Yes"),
        Row("Manufacturer", render_value(dhw.manufacturer)),
        Row("Model", render_value(dhw.model)),
        Row("CSAF379Rating", render_value(dhw.csa_f379_rating), "CSA F379 Rating"),
        Row("Slope", render_value(dhw.slope, "45")),
        Row("Azimuth", render_value(dhw.azimuth, "180")),
    ]


def _blower_door(ctx: ExportContext) -> SectionRows:
    b = ctx.record.blower_door_test
    areas = b.areas_of_leakage
    return [
        Row("TestPerformed", "No" if b.is_empty() else "Yes"),
        Row("AreasOfLeakage", render_list([humanize(code) for code in areas.selected()], "None specified", ", ")),
        Row("WindowComponent", render_value(b.window_component)),
        Row("OtherLeakage", render_value(b.other)),
        Heading("Specific Areas of Leakage Details"),
        Row("Rims", render_bool(areas.rims)),
        Row("ElectricOutlets", render_bool(areas.electric_outlet)),
        Row("Doors", render_bool(areas.doors)),
        Row("WallIntersections", render_bool(areas.wall_intersections)),
        Row("Baseboards", render_bool(areas.baseboards)),
        Row("CeilingFixtures", render_bool(areas.ceiling_fixtures)),
        Row("WindowFrames", render_bool(areas.window_frames)),
        Row("ElectricalPanel", render_bool(areas.electric_panel)),
        Row("AtticAccess", render_bool(areas.attic_access)),
    ]


def _depressurization(ctx: ExportContext) -> SectionRows:
    d = ctx.record.depressurization_test
    return [
        Row("TestPerformed", "No" if d.is_empty() else "Yes"),
        Row("WindowLeakage", render_bool(d.window_leakage)),
        Row("OtherLeakage", render_value(d.other_leakage, "None specified")),
    ]


def _completion(ctx: ExportContext) -> SectionRows:
    status = ctx.record.status.value
    return [
        Row("AuditStatus", status),
        Row("AuditCompleted", "Yes" if status == AuditStatus.completed.value else "No"),
        Row("ReportGenerationDate", ctx.generated_date),
        Row("EvaluatorSignature", ctx.evaluator_name),
    ]


@dataclass(frozen=True)
class ExportSection:
    key: str
    header: str
    title: str
    # Report page the section is laid out on; None keeps it out of the report
    page: Optional[str]
    build: Callable[[ExportContext], SectionRows] = field(repr=False)

    def rows(self, ctx: ExportContext) -> SectionRows:
        return self.build(ctx)


EXPORT_SECTIONS: Tuple[ExportSection, ...] = (
    ExportSection("identification", "IDENTIFICATION", "Customer & Property", "cover", _identification),
    ExportSection("eligibility_criteria", "ELIGIBILITY_CRITERIA", "Eligibility Criteria", "pre_audit", _eligibility),
    ExportSection("pre_audit_discussion", "PRE_AUDIT_DISCUSSION", "Pre-Audit Discussion", "pre_audit", _pre_audit),
    ExportSection("atypical_loads", "ATYPICAL_LOADS", "Atypical Loads", "pre_audit", _atypical_loads),
    ExportSection("program_info", "PROGRAM_INFORMATION", "Program Information", None, _program_info),
    ExportSection("house_info", "HOUSE_MEASUREMENTS", "House Information", "house", _house_measurements),
    ExportSection("walls_info", "WALLS", "Walls", "house", _walls),
    ExportSection("foundation_info", "FOUNDATION", "Foundation", "house", _foundation),
    ExportSection("windows_info", "WINDOWS", "Windows", "house", _windows),
    ExportSection("doors_info", "DOORS", "Doors", "house", _doors),
    ExportSection("ceiling_info", "CEILING", "Ceiling", "house", _ceiling),
    ExportSection("heating_info", "HEATING_PRIMARY", "Heating System", "mechanical", _heating),
    ExportSection("domestic_hot_water_info", "DHW_PRIMARY", "Domestic Hot Water", "mechanical", _domestic_hot_water),
    ExportSection("ventilation_info", "VENTILATION", "Ventilation", "mechanical", _ventilation),
    ExportSection("solar_pv", "SOLAR_PV", "Solar PV", "mechanical", _solar_pv),
    ExportSection("solar_dhw", "SOLAR_DHW", "Solar Domestic Hot Water", "mechanical", _solar_dhw),
    ExportSection("blower_door_test", "BLOWER_DOOR_TEST", "Blower Door Test", "tests", _blower_door),
    ExportSection("depressurization_test", "DEPRESSURIZATION_TEST", "Depressurization Test", "tests", _depressurization),
    ExportSection("completion", "AUDIT_COMPLETION", "Audit Completion", "tests", _completion),
)

REPORT_PAGES: Dict[str, str] = {
    "cover": "Energy Audit Report",
    "pre_audit": "Pre-Audit Information",
    "house": "House Information",
    "mechanical": "Mechanical Systems & Renewables",
    "tests": "Air Leakage Testing",
}


def audit_type_label(audit_type: Optional[str]) -> str:
    return AUDIT_TYPE_LABELS.get(audit_type or "", DEFAULT_AUDIT_TYPE_LABEL)


def home_type_label(home_type: Optional[str]) -> str:
    return map_vocabulary(home_type, HOME_TYPE_LABELS)


def category_title(category: str) -> str:
    return PHOTO_CATEGORY_TITLES.get(category, humanize(category).title())
