"""
models.py — Python dataclasses describing each admin resource.

Maps every table in database.SCHEMA to its primary key, URL path, parent
join and typed field map. The field map drives form binding, JSON encoding
and the generic list/detail/form templates.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


FIELD_TYPES = ('string', 'text', 'integer', 'number', 'boolean', 'date', 'array', 'id_array')


def to_camel(name: str) -> str:
    """snake_case column name -> camelCase JSON key."""
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


@dataclass(frozen=True)
class Field:
    """One writable column of a resource."""
    name: str
    type: str = 'string'
    required: bool = False
    label: str = ''
    default: Any = None

    @property
    def key(self) -> str:
        return to_camel(self.name)

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace('_', ' ').capitalize()


@dataclass(frozen=True)
class Parent:
    """Owning foreign key and the parent column shown in listings."""
    column: str
    table: str
    key: str
    display: str
    alias: str
    resource: str


@dataclass
class Resource:
    """Table-backed resource served by the generic CRUD routes."""
    name: str
    table: str
    primary_key: str
    path: str
    title: str
    singular: str
    fields: List[Field]
    display_field: Optional[str] = None
    parent: Optional[Parent] = None
    order_by: Optional[str] = None
    list_columns: List[str] = field(default_factory=list)

    @property
    def columns(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def required_fields(self) -> List[Field]:
        return [f for f in self.fields if f.required]

    def get_field(self, name: str) -> Optional[Field]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def summary_fields(self) -> List[Field]:
        """Fields shown as table columns on the list page."""
        if self.list_columns:
            return [self.get_field(name) for name in self.list_columns]
        skip = {self.parent.column} if self.parent else set()
        return [f for f in self.fields if f.name not in skip and f.type != 'text'][:4]


# ========================================
# Parents
# ========================================

PLANT_PARENT = Parent('plant_id', 'plants', 'id', 'botanical_name', 'plant_name', 'plants')
AREA_PARENT = Parent('area_id', 'garden_areas', 'area_id', 'area_name', 'area_name', 'garden_areas')
PLOT_PARENT = Parent('plot_id', 'plots', 'plot_id', 'plot_code', 'plot_code', 'plots')
BED_PARENT = Parent('bed_id', 'garden_beds', 'bed_id', 'bed_name', 'bed_name', 'garden_beds')

PLANT_FIELD = Field('plant_id', 'integer', required=True, label='Plant')


# ========================================
# Plant data
# ========================================

PLANTS = Resource(
    name='plants', table='plants', primary_key='id', path='plants',
    title='Plants', singular='Plant',
    display_field='botanical_name', order_by='botanical_name',
    fields=[
        Field('botanical_name', required=True),
        Field('common_name', required=True),
        Field('family'),
        Field('genus'),
        Field('species'),
        Field('description', 'text'),
        Field('native_range', 'text'),
        Field('growth_habit'),
        Field('lifespan'),
        Field('hardiness_zones'),
    ],
    list_columns=['common_name', 'family', 'growth_habit'],
)

PLANT_PARTS = Resource(
    name='parts', table='plant_part', primary_key='part_id', path='parts',
    title='Plant Parts', singular='Plant Part',
    display_field='part_name', parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('part_name', required=True),
        Field('description', 'text'),
        Field('edible', 'boolean', default=False),
        Field('harvest_guidelines', 'text'),
        Field('storage_requirements', 'text'),
        Field('processing_notes', 'text'),
    ],
)

GROWING_PROPERTIES = Resource(
    name='growing', table='plant_properties', primary_key='property_id', path='growing',
    title='Growing Properties', singular='Growing Property',
    parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('zone_range'),
        Field('soil_ph_range', label='Soil pH range'),
        Field('light_requirements'),
        Field('water_requirements'),
        Field('days_to_maturity', 'integer'),
        Field('height_mature_cm', 'integer', label='Mature height (cm)'),
        Field('spread_mature_cm', 'integer', label='Mature spread (cm)'),
        Field('soil_type_preferences', 'text'),
        Field('cultivation_notes', 'text'),
        Field('pest_susceptibility', 'text'),
        Field('disease_susceptibility', 'text'),
    ],
)

GERMINATION_GUIDES = Resource(
    name='germination', table='plant_germination_guide', primary_key='guide_id', path='germination',
    title='Germination Guides', singular='Germination Guide',
    display_field='zone_range', parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('zone_range'),
        Field('soil_temp_min_c', 'number', label='Soil temp min (°C)'),
        Field('soil_temp_max_c', 'number', label='Soil temp max (°C)'),
        Field('days_to_germination_min', 'integer'),
        Field('days_to_germination_max', 'integer'),
        Field('planting_depth_cm', 'number', label='Planting depth (cm)'),
        Field('light_requirement'),
        Field('stratification_required', 'boolean', default=False),
        Field('stratification_instructions', 'text'),
        Field('scarification_required', 'boolean', default=False),
        Field('scarification_instructions', 'text'),
        Field('germination_notes', 'text'),
    ],
)

PLANTING_GUIDES = Resource(
    name='planting_guides', table='planting_guide', primary_key='guide_id', path='planting-guides',
    title='Planting Guides', singular='Planting Guide',
    parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('spring_planting_start', 'date'),
        Field('spring_planting_end', 'date'),
        Field('fall_planting_start', 'date'),
        Field('fall_planting_end', 'date'),
        Field('indoor_sowing_start', 'date'),
        Field('transplant_ready_weeks', 'integer'),
        Field('direct_sow_after_frost', 'boolean', default=False),
        Field('frost_tolerance'),
        Field('heat_tolerance'),
        Field('succession_planting_interval', 'integer'),
        Field('companion_plants', 'array'),
        Field('incompatible_plants', 'array'),
        Field('rotation_group'),
        Field('rotation_interval', 'integer'),
    ],
)


# ========================================
# Medicinal and culinary properties
# ========================================

HERBAL_ACTIONS = Resource(
    name='herbal_actions', table='herbal_action', primary_key='action_id', path='herbal-actions',
    title='Herbal Actions', singular='Herbal Action',
    display_field='action_name', order_by='action_name',
    fields=[
        Field('action_name', required=True),
        Field('description', 'text'),
        Field('scientific_basis', 'text'),
        Field('historical_context', 'text'),
    ],
)

PLANT_ACTIONS = Resource(
    name='actions', table='plant_actions', primary_key='plant_action_id', path='actions',
    title='Plant Actions', singular='Plant Action',
    parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('action_id', 'integer', required=True, label='Herbal action'),
        Field('part_id', 'integer', label='Plant part'),
        Field('specific_notes', 'text'),
        Field('strength_rating', 'integer', label='Strength rating (1-10)'),
        Field('research_references', 'text'),
    ],
)

MEDICINAL_PROPERTIES = Resource(
    name='medicinal', table='medicinal_properties', primary_key='med_prop_id', path='medicinal',
    title='Medicinal Properties', singular='Medicinal Property',
    parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('traditional_uses', 'text'),
        Field('drug_interactions', 'text'),
        Field('safety_notes', 'text'),
        Field('preparation_methods', 'text'),
        Field('dosage_guidelines', 'text'),
    ],
    list_columns=['traditional_uses', 'safety_notes'],
)

RECIPES = Resource(
    name='recipes', table='plant_recipes', primary_key='recipe_id', path='recipes',
    title='Recipes', singular='Recipe',
    display_field='recipe_name', parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('recipe_name', required=True),
        Field('ingredients', 'text', required=True),
        Field('instructions', 'text', required=True),
        Field('preparation_time', 'integer', label='Preparation time (min)'),
        Field('difficulty_level'),
        Field('recipe_yield', label='Yield'),
        Field('notes', 'text'),
    ],
)

SEED_SAVING = Resource(
    name='seeds', table='seed_saving_info', primary_key='info_id', path='seeds',
    title='Seed Saving', singular='Seed Saving Info',
    parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('seed_type'),
        Field('seed_size'),
        Field('seed_color'),
        Field('days_to_maturity'),
        Field('harvest_season'),
        Field('harvesting_instructions', 'text'),
        Field('cleaning_instructions', 'text'),
        Field('drying_instructions', 'text'),
        Field('storage_instructions', 'text'),
        Field('storage_lifespan'),
        Field('germination_requirements', 'text'),
        Field('seed_saving_difficulty'),
        Field('cross_pollination_concerns', 'text'),
        Field('isolation_distance'),
        Field('seed_yield'),
        Field('notes', 'text'),
    ],
)

CULINARY_USES = Resource(
    name='culinary', table='culinary_uses', primary_key='use_id', path='culinary',
    title='Culinary Uses', singular='Culinary Use',
    parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('edible_parts', 'array'),
        Field('flavor_profile'),
        Field('culinary_category'),
        Field('preparation_methods', 'text'),
        Field('common_dishes', 'text'),
        Field('cuisines', 'array'),
        Field('harvesting_season'),
        Field('nutritional_info', 'text'),
        Field('substitutions', 'text'),
        Field('pairs_with', 'array'),
        Field('storage_method'),
        Field('preservation_methods', 'text'),
        Field('special_considerations', 'text'),
        Field('notes', 'text'),
    ],
)

CUT_FLOWERS = Resource(
    name='cutflowers', table='cut_flower_characteristics', primary_key='characteristic_id',
    path='cutflowers', title='Cut Flowers', singular='Cut Flower',
    parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('stem_length_min', 'number'),
        Field('stem_length_max', 'number'),
        Field('stem_strength'),
        Field('flower_form'),
        Field('color_variations', 'array'),
        Field('fragrance_level'),
        Field('seasonal_availability', 'array'),
        Field('harvest_stage', 'text'),
        Field('ethylene_sensitivity', 'boolean', default=False),
        Field('cold_storage_temp', 'number', label='Cold storage temp (°C)'),
        Field('transport_requirements', 'text'),
        Field('typical_vase_life_days', 'integer'),
        Field('notes', 'text'),
    ],
)

CUT_FLOWER_TREATMENTS = Resource(
    name='cutflower_treatments', table='cut_flower_treatments', primary_key='treatment_id',
    path='cutflower-treatments', title='Cut-Flower Treatments', singular='Treatment',
    display_field='treatment_name', parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('treatment_type'),
        Field('treatment_name'),
        Field('chemical_composition', 'text'),
        Field('concentration'),
        Field('application_method', 'text'),
        Field('duration'),
        Field('effectiveness', 'text'),
        Field('precautions', 'text'),
        Field('notes', 'text'),
    ],
)

WESTERN_MEDICINE = Resource(
    name='western_medicine', table='western_medicine', primary_key='property_id',
    path='western-medicine', title='Western Medicine', singular='Western Medicine Entry',
    parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('active_compounds', 'array'),
        Field('clinical_applications', 'text'),
        Field('dosage_information', 'text'),
        Field('safety_considerations', 'text'),
        Field('drug_interactions', 'text'),
        Field('research_summary', 'text'),
        Field('category_ids', 'id_array', label='Category IDs'),
        Field('action_ids', 'id_array', label='Action IDs'),
    ],
    list_columns=['active_compounds', 'clinical_applications'],
)

TCM_PROPERTIES = Resource(
    name='tcm', table='plant_tcm_properties', primary_key='property_id', path='tcm',
    title='TCM Properties', singular='TCM Property',
    display_field='pinyin_name', parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('chinese_name'),
        Field('pinyin_name'),
        Field('temperature_id', 'integer', label='Temperature'),
        Field('taste_ids', 'id_array', label='Taste IDs', default=[]),
        Field('meridian_ids', 'id_array', label='Meridian IDs', default=[]),
        Field('dosage_range'),
        Field('contraindications', 'text'),
        Field('preparation_methods', 'text'),
    ],
)

AYURVEDIC_PROPERTIES = Resource(
    name='ayurvedic', table='plant_ayurvedic_properties', primary_key='property_id', path='ayurvedic',
    title='Ayurvedic Properties', singular='Ayurvedic Property',
    display_field='sanskrit_name', parent=PLANT_PARENT,
    fields=[
        PLANT_FIELD,
        Field('sanskrit_name'),
        Field('common_ayurvedic_name'),
        Field('rasa_ids', 'id_array', label='Rasa IDs', default=[]),
        Field('virya_id', 'integer', label='Virya'),
        Field('vipaka_id', 'integer', label='Vipaka'),
        Field('guna_ids', 'id_array', label='Guna IDs', default=[]),
        Field('prabhava', 'text'),
        Field('dosage_form', 'text'),
        Field('dosage_range'),
        Field('anupana', 'text'),
        Field('contraindications', 'text'),
    ],
)


# ========================================
# Garden management
# ========================================

GARDEN_AREAS = Resource(
    name='garden_areas', table='garden_areas', primary_key='area_id', path='garden/areas',
    title='Garden Areas', singular='Garden Area',
    display_field='area_name', order_by='area_name',
    fields=[
        Field('area_name', required=True),
        Field('description', 'text'),
        Field('total_size_sqm', 'number', label='Total size (m²)'),
        Field('elevation_meters', 'number'),
        Field('location_details', 'text'),
        Field('topography', 'text'),
        Field('microclimate_notes', 'text'),
        Field('water_access', 'text'),
    ],
)

PLOTS = Resource(
    name='plots', table='plots', primary_key='plot_id', path='garden/plots',
    title='Plots', singular='Plot',
    display_field='plot_code', parent=AREA_PARENT, order_by='plot_code',
    fields=[
        Field('plot_code', required=True),
        Field('area_id', 'integer', label='Garden area'),
        Field('size_sqm', 'number', label='Size (m²)'),
        Field('orientation'),
        Field('sun_exposure', 'text'),
        Field('irrigation_type', 'text'),
        Field('notes', 'text'),
        Field('status', default='active'),
    ],
    list_columns=['size_sqm', 'orientation', 'status'],
)

GARDEN_BEDS = Resource(
    name='garden_beds', table='garden_beds', primary_key='bed_id', path='garden/beds',
    title='Garden Beds', singular='Garden Bed',
    display_field='bed_name', parent=PLOT_PARENT, order_by='bed_name',
    fields=[
        Field('plot_id', 'integer', required=True, label='Plot'),
        Field('bed_name', required=True),
        Field('bed_code', required=True),
        Field('length_cm', 'integer'),
        Field('width_cm', 'integer'),
        Field('height_cm', 'integer'),
        Field('area_sqm', 'number', label='Area (m²)'),
        Field('soil_type'),
        Field('soil_depth_cm', 'number'),
        Field('raised_bed', 'boolean', default=False),
        Field('irrigation_type'),
        Field('sun_exposure'),
        Field('notes', 'text'),
        Field('status', default='active'),
    ],
    list_columns=['bed_code', 'soil_type', 'status'],
)

CROP_ROTATIONS = Resource(
    name='crop_rotations', table='crop_rotations', primary_key='rotation_id',
    path='garden/crop-rotations', title='Crop Rotations', singular='Crop Rotation',
    parent=BED_PARENT,
    fields=[
        Field('bed_id', 'integer', required=True, label='Garden bed'),
        Field('season'),
        Field('year', 'integer', required=True),
        Field('plant_families', 'array'),
        Field('notes', 'text'),
    ],
)

# Plantings and their companions are written only through PlantingRepository;
# these declarations give the form binder and templates their field maps.
PLANTINGS = Resource(
    name='plantings', table='plantings', primary_key='planting_id', path='garden/plantings',
    title='Plantings', singular='Planting',
    parent=PLANT_PARENT, order_by='planting_date',
    fields=[
        PLANT_FIELD,
        Field('plot_id', 'integer', label='Plot'),
        Field('bed_id', 'integer', label='Garden bed'),
        Field('planting_date', 'date', required=True),
        Field('planting_method'),
        Field('quantity_planted', 'integer'),
        Field('spacing_cm', 'integer', label='Spacing (cm)'),
        Field('depth_cm', 'number', label='Depth (cm)'),
        Field('area_sqm', 'number', label='Area (m²)'),
        Field('notes', 'text'),
    ],
)

COMPANION_FIELDS = [
    Field('plant_id', 'integer', required=True, label='Companion plant'),
    Field('quantity', 'integer'),
    Field('x_position', 'number'),
    Field('y_position', 'number'),
    Field('notes', 'text'),
]


RESOURCES: Dict[str, Resource] = {
    r.name: r for r in [
        PLANTS, PLANT_PARTS, GROWING_PROPERTIES, GERMINATION_GUIDES, PLANTING_GUIDES,
        HERBAL_ACTIONS, PLANT_ACTIONS, MEDICINAL_PROPERTIES, RECIPES, SEED_SAVING,
        CULINARY_USES, CUT_FLOWERS, CUT_FLOWER_TREATMENTS, WESTERN_MEDICINE,
        TCM_PROPERTIES, AYURVEDIC_PROPERTIES,
        GARDEN_AREAS, PLOTS, GARDEN_BEDS, CROP_ROTATIONS,
    ]
}

# Sections used by the navigation bar and dashboard.
RESOURCE_GROUPS = [
    ('Plants', ['plants', 'parts', 'growing', 'germination', 'planting_guides', 'recipes', 'seeds']),
    ('Medicinal', ['herbal_actions', 'actions', 'medicinal', 'western_medicine', 'tcm', 'ayurvedic']),
    ('Culinary & Flowers', ['culinary', 'cutflowers', 'cutflower_treatments']),
    ('Garden', ['garden_areas', 'plots', 'garden_beds', 'crop_rotations']),
]


def child_resources(name: str) -> List[Resource]:
    """Resources owned by `name` (e.g. a plant's parts, a plot's beds)."""
    return [r for r in RESOURCES.values() if r.parent and r.parent.resource == name]
