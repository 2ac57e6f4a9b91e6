"""Seed a small gastronomy catalog and print an analysis summary.

Usage (from repository root):
    python backend/scripts/seed_demo.py

Usage (from backend directory):
    python scripts/seed_demo.py
    # or
    python -m scripts.seed_demo
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from sqlalchemy.orm import Session

# Make `attribute_insight` imports work whether the script is run from repo root or backend/.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from attribute_insight.db.base import Base
from attribute_insight.db.session import SessionLocal, engine
from attribute_insight.duplicates.detector import find_duplicates
from attribute_insight.eav.backends import value_backend_for
from attribute_insight.models.attribute import Attribute
from attribute_insight.models.attribute_option import BASE_STORE_ID, AttributeOption, AttributeOptionValue
from attribute_insight.models.attribute_set import AttributeSet, AttributeSetMember
from attribute_insight.models.catalog_entity import CatalogEntity, EntityCategory
from attribute_insight.models.entity_type import EntityType
from attribute_insight.services.fill_rate import get_summary_statistics
from attribute_insight.services.format_chaos import analyze_attributes
from attribute_insight.services.set_migration import find_misassigned_products

DEFAULT_ENTITY_TYPE = "catalog_product"

# code -> (label, input, backend)
DEMO_ATTRIBUTES: dict[str, tuple[str, str, str]] = {
    "manufacturer": ("Hersteller", "select", "int"),
    "breite": ("Breite", "text", "varchar"),
    "width": ("Width", "text", "varchar"),
    "temperaturbereich": ("Temperaturbereich", "text", "varchar"),
    "kaeltemittel": ("Kältemittel", "text", "varchar"),
    "leistung": ("Leistung", "text", "varchar"),
    "power": ("Power", "text", "varchar"),
    "farbe": ("Farbe", "select", "int"),
    "color": ("Color", "select", "int"),
    "dampferzeuger": ("Dampferzeuger", "text", "varchar"),
}

DEMO_OPTIONS: dict[str, tuple[str, ...]] = {
    "manufacturer": ("Liebherr", "Rational", "Nordcap", "Bartscher"),
    "farbe": ("Schwarz", "Weiß", "Edelstahl"),
    "color": ("schwarz", "Silber"),
}

DEMO_SETS: dict[str, tuple[str, ...]] = {
    "Default": tuple(DEMO_ATTRIBUTES),
    "Kühltechnik": ("manufacturer", "breite", "temperaturbereich", "kaeltemittel", "leistung"),
    "Kombidämpfer": ("manufacturer", "breite", "dampferzeuger", "leistung"),
}

# sku -> (set, categories, values); select values are option labels.
DEMO_PRODUCTS: dict[str, tuple[str, tuple[str, ...], dict[str, str]]] = {
    "KT-1001": (
        "Default",
        ("Kühlschränke",),
        {"manufacturer": "Liebherr", "breite": "600 mm", "temperaturbereich": "+2 bis +8°C", "kaeltemittel": "R600a"},
    ),
    "KT-1002": (
        "Default",
        ("Tiefkühltruhen",),
        {"manufacturer": "Nordcap", "width": "70cm", "temperaturbereich": "-18 - -22 Grad", "power": "250W"},
    ),
    "KD-2001": (
        "Default",
        ("Kombidämpfer",),
        {"manufacturer": "Rational", "breite": "850 mm", "dampferzeuger": "ja", "leistung": "10.8 kW"},
    ),
    "KT-1003": (
        "Kühltechnik",
        ("Kühlschränke",),
        {"manufacturer": "Liebherr", "breite": "0.6 m", "temperaturbereich": "2/8 °C", "farbe": "Weiß"},
    ),
    "BAR-3001": (
        "Default",
        ("Zubehör",),
        {"manufacturer": "Bartscher", "color": "schwarz", "leistung": "2,5kW"},
    ),
    "BAR-3002": ("Default", ("Zubehör",), {"farbe": "Schwarz"}),
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed a demo attribute catalog.")
    parser.add_argument(
        "--entity-type",
        default=DEFAULT_ENTITY_TYPE,
        help=f"Entity type code to seed (default: {DEFAULT_ENTITY_TYPE})",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create tables from ORM metadata instead of relying on alembic.",
    )
    return parser.parse_args()


def seed_catalog(db: Session, entity_type_code: str) -> EntityType:
    """Create entity type, attributes, options, sets and products."""

    entity_type = EntityType(code=entity_type_code, entity_label="Product")
    db.add(entity_type)
    db.flush()

    attributes: dict[str, Attribute] = {}
    for code, (label, frontend_input, backend_type) in DEMO_ATTRIBUTES.items():
        attribute = Attribute(
            entity_type_id=entity_type.id,
            attribute_code=code,
            frontend_label=label,
            frontend_input=frontend_input,
            backend_type=backend_type,
            is_user_defined=True,
        )
        db.add(attribute)
        attributes[code] = attribute
    db.flush()

    option_ids: dict[tuple[str, str], int] = {}
    for code, labels in DEMO_OPTIONS.items():
        for sort_order, label in enumerate(labels):
            option = AttributeOption(attribute_id=attributes[code].id, sort_order=sort_order)
            db.add(option)
            db.flush()
            db.add(AttributeOptionValue(option_id=option.id, store_id=BASE_STORE_ID, value=label))
            option_ids[(code, label)] = option.id

    sets: dict[str, AttributeSet] = {}
    for name, codes in DEMO_SETS.items():
        attribute_set = AttributeSet(entity_type_id=entity_type.id, name=name)
        db.add(attribute_set)
        db.flush()
        for sort_order, code in enumerate(codes):
            db.add(
                AttributeSetMember(
                    attribute_set_id=attribute_set.id,
                    attribute_id=attributes[code].id,
                    sort_order=sort_order,
                )
            )
        sets[name] = attribute_set
    entity_type.default_attribute_set_id = sets["Default"].id

    for sku, (set_name, categories, values) in DEMO_PRODUCTS.items():
        entity = CatalogEntity(entity_type_id=entity_type.id, sku=sku, attribute_set_id=sets[set_name].id)
        db.add(entity)
        db.flush()
        for category in categories:
            db.add(EntityCategory(entity_id=entity.id, category_name=category))
        for code, raw in values.items():
            attribute = attributes[code]
            backend = value_backend_for(attribute.backend_type)
            value = option_ids[(code, raw)] if attribute.is_select else raw
            db.add(
                backend.model(
                    attribute_id=attribute.id,
                    entity_id=entity.id,
                    store_id=BASE_STORE_ID,
                    value=backend.coerce(value),
                )
            )
    db.commit()
    return entity_type


def main() -> None:
    """Seed demo data and print a short summary."""

    args = parse_args()
    if args.create_tables:
        Base.metadata.create_all(engine)

    with SessionLocal() as db:
        seed_catalog(db, args.entity_type)
        summary = get_summary_statistics(db, args.entity_type)
        duplicates = find_duplicates(db, args.entity_type)
        chaos = analyze_attributes(db, args.entity_type)
        misassigned = find_misassigned_products(db, args.entity_type)

    print("Seed complete")
    print(f"entity_type={args.entity_type}")
    print(f"attributes={summary.total_attributes} avg_fill_rate={summary.avg_fill_rate}")
    print(f"critical={summary.critical} warning={summary.warning} healthy={summary.healthy}")
    print(f"duplicate_groups={len(duplicates)}")
    print(f"chaotic_attributes={chaos.chaotic}/{chaos.analyzed}")
    print(f"misassigned_products={len(misassigned)}")
    print()
    print("Inspect:")
    print("  GET /analysis/fill-rates")
    print("  GET /analysis/duplicates")
    print("  GET /analysis/chaos")
    print("  GET /migrations/misassigned")


if __name__ == "__main__":
    main()
