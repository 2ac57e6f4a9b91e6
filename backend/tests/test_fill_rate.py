"""Tests for fill-rate analysis."""

from __future__ import annotations

import unittest

from sqlalchemy.orm import Session

from attribute_insight.services.fill_rate import (
    get_attribute_fill_rates,
    get_critical_attributes,
    get_fill_rates_by_manufacturer,
    get_fill_rates_by_set,
    get_summary_statistics,
    get_unused_attributes,
)
from catalog_factories import (
    ENTITY_TYPE,
    add_attribute,
    add_entity,
    add_entity_type,
    add_option,
    add_set,
    make_engine,
    make_session_factory,
    make_settings,
    reset_tables,
    set_value,
)


class FillRateTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = make_engine()
        cls.SessionLocal = make_session_factory(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        cls.engine.dispose()

    def setUp(self) -> None:
        self.db: Session = self.SessionLocal()
        reset_tables(self.db)
        self.settings = make_settings()

    def tearDown(self) -> None:
        self.db.close()

    def _seed_catalog(self) -> dict[str, int]:
        entity_type = add_entity_type(self.db)
        breite = add_attribute(self.db, entity_type, "breite", label="Breite")
        farbe = add_attribute(self.db, entity_type, "farbe", frontend_input="textarea", backend_type="text")
        gewicht = add_attribute(self.db, entity_type, "gewicht", backend_type="decimal", frontend_input="weight")
        add_attribute(self.db, entity_type, "notiz")
        add_attribute(self.db, entity_type, "sku", backend_type="static", is_user_defined=False)
        add_attribute(self.db, entity_type, "status", is_user_defined=False)

        cooling = add_set(self.db, entity_type, "Kühltechnik", [breite, gewicht])
        default_set = add_set(self.db, entity_type, "Default", [breite, farbe])
        entities = [
            add_entity(self.db, entity_type, cooling, "KT-1"),
            add_entity(self.db, entity_type, cooling, "KT-2"),
            add_entity(self.db, entity_type, default_set, "D-1"),
            add_entity(self.db, entity_type, default_set, "D-2"),
        ]
        for entity in entities[:3]:
            set_value(self.db, entity, breite, "600 mm")
        set_value(self.db, entities[0], breite, "", store_id=1)
        set_value(self.db, entities[3], breite, "")
        set_value(self.db, entities[0], farbe, "Weiß")
        set_value(self.db, entities[1], farbe, "")
        set_value(self.db, entities[0], gewicht, "12.5")
        set_value(self.db, entities[1], gewicht, "7")
        self.db.commit()
        return {"cooling": cooling.id, "default": default_set.id}

    def test_rate_is_distinct_filled_over_total(self) -> None:
        self._seed_catalog()
        rates = get_attribute_fill_rates(self.db, ENTITY_TYPE, settings=self.settings)
        by_code = {item.code: item for item in rates.values()}

        self.assertEqual(by_code["breite"].filled, 3)
        self.assertEqual(by_code["breite"].rate, 75.0)
        self.assertEqual(by_code["breite"].status, "healthy")
        self.assertEqual(by_code["farbe"].filled, 1)
        self.assertEqual(by_code["farbe"].rate, 25.0)
        self.assertEqual(by_code["farbe"].status, "critical")
        self.assertEqual(by_code["gewicht"].rate, 50.0)
        self.assertEqual(by_code["notiz"].rate, 0.0)
        self.assertEqual(by_code["notiz"].status, "critical")

    def test_one_of_four_is_critical_at_default_threshold(self) -> None:
        entity_type = add_entity_type(self.db)
        attribute = add_attribute(self.db, entity_type, "kaeltemittel")
        attribute_set = add_set(self.db, entity_type, "Default")
        entities = [add_entity(self.db, entity_type, attribute_set, f"P-{index}") for index in range(4)]
        set_value(self.db, entities[0], attribute, "R600a")
        self.db.commit()

        rate = get_attribute_fill_rates(self.db, ENTITY_TYPE, settings=self.settings)[attribute.id]
        self.assertEqual(rate.rate, 25.0)
        self.assertEqual(rate.status, "critical")

    def test_system_and_static_attributes_are_excluded(self) -> None:
        self._seed_catalog()
        codes = {item.code for item in get_attribute_fill_rates(self.db, ENTITY_TYPE, settings=self.settings).values()}
        self.assertNotIn("sku", codes)
        self.assertNotIn("status", codes)

        with_system = make_settings(exclude_system_attributes=False)
        codes = {item.code for item in get_attribute_fill_rates(self.db, ENTITY_TYPE, settings=with_system).values()}
        self.assertIn("status", codes)
        self.assertNotIn("sku", codes)

    def test_results_are_sorted_worst_first(self) -> None:
        self._seed_catalog()
        rates = [item.rate for item in get_attribute_fill_rates(self.db, ENTITY_TYPE, settings=self.settings).values()]
        self.assertEqual(rates, sorted(rates))

    def test_zero_entities_returns_empty_mapping(self) -> None:
        entity_type = add_entity_type(self.db)
        add_attribute(self.db, entity_type, "breite")
        self.db.commit()
        self.assertEqual(get_attribute_fill_rates(self.db, ENTITY_TYPE, settings=self.settings), {})
        self.assertEqual(get_attribute_fill_rates(self.db, "unknown_type", settings=self.settings), {})
        self.assertEqual(get_summary_statistics(self.db, ENTITY_TYPE, settings=self.settings).total_attributes, 0)

    def test_set_scoped_rates(self) -> None:
        set_ids = self._seed_catalog()
        cooling = get_attribute_fill_rates(self.db, ENTITY_TYPE, set_ids["cooling"], settings=self.settings)
        by_code = {item.code: item for item in cooling.values()}

        self.assertEqual(set(by_code), {"breite", "gewicht"})
        self.assertEqual(by_code["breite"].total, 2)
        self.assertEqual(by_code["breite"].rate, 100.0)
        self.assertEqual(by_code["gewicht"].rate, 100.0)

    def test_fill_rates_by_set_orders_by_product_count(self) -> None:
        entity_type = add_entity_type(self.db)
        attribute = add_attribute(self.db, entity_type, "breite")
        small = add_set(self.db, entity_type, "Small", [attribute])
        large = add_set(self.db, entity_type, "Large", [attribute])
        add_entity(self.db, entity_type, small, "S-1")
        for index in range(3):
            add_entity(self.db, entity_type, large, f"L-{index}")
        self.db.commit()

        by_set = list(get_fill_rates_by_set(self.db, ENTITY_TYPE, settings=self.settings).values())
        self.assertEqual([item.name for item in by_set], ["Large", "Small"])
        self.assertEqual(by_set[0].product_count, 3)

    def test_critical_unused_and_summary(self) -> None:
        self._seed_catalog()
        critical = get_critical_attributes(self.db, ENTITY_TYPE, 30.0, settings=self.settings)
        self.assertEqual({item.code for item in critical.values()}, {"farbe", "notiz"})

        unused = get_unused_attributes(self.db, ENTITY_TYPE, settings=self.settings)
        self.assertEqual({item.code for item in unused.values()}, {"notiz"})

        summary = get_summary_statistics(self.db, ENTITY_TYPE, settings=self.settings)
        self.assertEqual(summary.total_attributes, 4)
        self.assertEqual(summary.critical, 2)
        self.assertEqual(summary.warning, 0)
        self.assertEqual(summary.healthy, 2)
        self.assertEqual(summary.avg_fill_rate, 37.5)

    def test_fill_rates_by_manufacturer(self) -> None:
        entity_type = add_entity_type(self.db)
        manufacturer = add_attribute(self.db, entity_type, "manufacturer", frontend_input="select", backend_type="int")
        breite = add_attribute(self.db, entity_type, "breite")
        liebherr = add_option(self.db, manufacturer, "Liebherr")
        rational = add_option(self.db, manufacturer, "Rational")
        attribute_set = add_set(self.db, entity_type, "Default")
        entities = [add_entity(self.db, entity_type, attribute_set, f"P-{index}") for index in range(4)]
        set_value(self.db, entities[0], manufacturer, liebherr)
        set_value(self.db, entities[1], manufacturer, liebherr)
        set_value(self.db, entities[2], manufacturer, rational)
        set_value(self.db, entities[0], breite, "600 mm")
        set_value(self.db, entities[2], breite, "850 mm")
        self.db.commit()

        rows = get_fill_rates_by_manufacturer(self.db, "breite", ENTITY_TYPE, settings=self.settings)
        self.assertEqual([(row.manufacturer, row.rate) for row in rows], [("Liebherr", 50.0), ("Rational", 100.0)])
        self.assertEqual(get_fill_rates_by_manufacturer(self.db, "missing", ENTITY_TYPE, settings=self.settings), [])


if __name__ == "__main__":
    unittest.main()
