"""
Enums for energy audit models to ensure type safety and consistency
"""

from enum import Enum


class AuditStatus(str, Enum):
    """Lifecycle states of an audit record"""
    draft = 'draft'
    in_progress = 'in_progress'
    completed = 'completed'


class AuditType(str, Enum):
    before_upgrade = 'before_upgrade'
    after_upgrade = 'after_upgrade'


class HomeType(str, Enum):
    single_detached = 'single_detached'
    attached = 'attached'
    row_end = 'row_end'
    row_mid = 'row_mid'


class PhotoCategory(str, Enum):
    """Closed set of photo tags; declaration order is the report order"""
    exterior = 'exterior'
    heating_system = 'heating_system'
    hot_water = 'hot_water'
    hrv_erv = 'hrv_erv'
    renewables = 'renewables'
    attic_insulation = 'attic_insulation'
    blower_door = 'blower_door'


class HeightUnit(str, Enum):
    meters = 'm'
    feet = 'ft'


PHOTO_CATEGORY_ORDER = {category.value: index for index, category in enumerate(PhotoCategory)}
