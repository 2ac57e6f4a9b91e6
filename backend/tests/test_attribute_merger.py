"""Tests for attribute merge execution, preview and rollback."""

from __future__ import annotations

import unittest
from unittest.mock import patch

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from attribute_insight.eav.catalog import base_option_labels, get_attribute
from attribute_insight.errors import NotFoundError
from attribute_insight.models.attribute_merge_log import AttributeMergeLog
from attribute_insight.models.attribute_set import AttributeSetMember
from attribute_insight.schemas.merge import ConflictStrategy
from attribute_insight.services import attribute_merger
from attribute_insight.services.attribute_merger import (
    check_compatibility,
    execute_merge,
    list_merge_logs,
    merge_options,
    preview_merge,
    resolve_conflict_strategy,
    rollback_merge,
)
from catalog_factories import (
    add_attribute,
    add_entity,
    add_entity_type,
    add_option,
    add_set,
    get_value,
    make_engine,
    make_session_factory,
    reset_tables,
    set_value,
)


class AttributeMergerTests(unittest.TestCase):
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
        self.entity_type = add_entity_type(self.db)
        self.attribute_set = add_set(self.db, self.entity_type, "Default")
        self.first = add_entity(self.db, self.entity_type, self.attribute_set, "KT-1")
        self.second = add_entity(self.db, self.entity_type, self.attribute_set, "KT-2")

    def tearDown(self) -> None:
        self.db.close()

    def _seed_text_pair(self) -> tuple[int, int]:
        target = add_attribute(self.db, self.entity_type, "breite", label="Breite")
        source = add_attribute(self.db, self.entity_type, "breite_alt", label="Breite alt")
        set_value(self.db, self.first, target, "600 mm")
        set_value(self.db, self.first, source, "60 cm")
        set_value(self.db, self.second, source, "70 cm")
        self.db.commit()
        return source.id, target.id

    def _merge_values(self, strategy: ConflictStrategy | str) -> tuple[int, object, object]:
        source_id, target_id = self._seed_text_pair()
        result = execute_merge(self.db, [source_id], target_id, strategy)
        return (
            result.values_migrated,
            get_value(self.db, self.first.id, target_id),
            get_value(self.db, self.second.id, target_id),
        )

    def test_keep_target_only_fills_missing_values(self) -> None:
        self.assertEqual(self._merge_values(ConflictStrategy.KEEP_TARGET), (1, "600 mm", "70 cm"))

    def test_keep_source_overwrites_target(self) -> None:
        self.assertEqual(self._merge_values(ConflictStrategy.KEEP_SOURCE), (2, "60 cm", "70 cm"))

    def test_concatenate_joins_text_values(self) -> None:
        self.assertEqual(self._merge_values(ConflictStrategy.CONCATENATE), (2, "600 mm | 60 cm", "70 cm"))

    def test_fill_empty_and_skip_leave_conflicts_untouched(self) -> None:
        self.assertEqual(self._merge_values(ConflictStrategy.FILL_EMPTY), (1, "600 mm", "70 cm"))

    def test_unknown_strategy_falls_back_to_fill_empty(self) -> None:
        self.assertEqual(resolve_conflict_strategy("bogus"), ConflictStrategy.FILL_EMPTY)
        self.assertEqual(resolve_conflict_strategy("skip"), ConflictStrategy.SKIP)
        self.assertEqual(self._merge_values("bogus"), (1, "600 mm", "70 cm"))

    def test_merge_writes_log_and_keeps_source_by_default(self) -> None:
        source_id, target_id = self._seed_text_pair()
        result = execute_merge(self.db, [source_id], target_id)

        self.assertEqual([item.source_id for item in result.merged], [source_id])
        self.assertIsNotNone(result.merge_log_id)
        self.assertIsNotNone(get_attribute(self.db, source_id))
        logs = list_merge_logs(self.db, target_id)
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0].source_attribute_ids_json, [source_id])
        self.assertEqual(logs[0].conflict_strategy, "keep_target")

    def test_select_options_are_remapped_by_label(self) -> None:
        target = add_attribute(self.db, self.entity_type, "farbe", frontend_input="select", backend_type="int")
        source = add_attribute(self.db, self.entity_type, "color", frontend_input="select", backend_type="int")
        schwarz = add_option(self.db, target, "Schwarz")
        add_option(self.db, target, "Weiß")
        source_schwarz = add_option(self.db, source, "schwarz")
        source_silber = add_option(self.db, source, "Silber", store_labels={1: "Silver"})
        set_value(self.db, self.first, source, source_schwarz)
        set_value(self.db, self.second, source, source_silber)
        self.db.commit()

        result = execute_merge(self.db, [source.id], target.id)

        self.assertEqual(result.options_merged, 2)
        labels = {label: option_id for option_id, label in base_option_labels(self.db, target.id)}
        self.assertEqual(set(labels), {"Schwarz", "Weiß", "Silber"})
        self.assertEqual(get_value(self.db, self.first.id, target.id), schwarz)
        self.assertEqual(get_value(self.db, self.second.id, target.id), labels["Silber"])

    def test_multiselect_values_are_remapped_per_option(self) -> None:
        target = add_attribute(self.db, self.entity_type, "ausstattung", frontend_input="multiselect")
        source = add_attribute(self.db, self.entity_type, "features", frontend_input="multiselect")
        rollen = add_option(self.db, target, "Rollen")
        source_rollen = add_option(self.db, source, "rollen")
        source_licht = add_option(self.db, source, "Innenbeleuchtung")
        set_value(self.db, self.first, source, f"{source_rollen},{source_licht}")
        self.db.commit()

        execute_merge(self.db, [source.id], target.id)

        labels = {label: option_id for option_id, label in base_option_labels(self.db, target.id)}
        self.assertEqual(get_value(self.db, self.first.id, target.id), f"{rollen},{labels['Innenbeleuchtung']}")

    def test_incompatible_and_missing_sources_are_soft_failures(self) -> None:
        target = add_attribute(self.db, self.entity_type, "breite")
        select_source = add_attribute(self.db, self.entity_type, "breite_select", frontend_input="select", backend_type="int")
        self.db.commit()

        result = execute_merge(self.db, [select_source.id, 999_999, target.id], target.id)

        self.assertEqual(result.merged, [])
        self.assertEqual(
            [(item.id, item.reason) for item in result.failed],
            [
                (select_source.id, "Incompatible types: text <- select"),
                (999_999, "Not found"),
                (target.id, "Source and target are the same attribute"),
            ],
        )
        self.assertIsNone(result.merge_log_id)
        self.assertEqual(self.db.scalar(select(func.count(AttributeMergeLog.id))), 0)

    def test_unexpected_failure_rolls_back_every_source(self) -> None:
        target = add_attribute(self.db, self.entity_type, "farbe", frontend_input="select", backend_type="int")
        add_option(self.db, target, "Schwarz")
        color = add_attribute(self.db, self.entity_type, "color", frontend_input="select", backend_type="int")
        colour = add_attribute(self.db, self.entity_type, "colour", frontend_input="select", backend_type="int")
        set_value(self.db, self.first, color, add_option(self.db, color, "Silber"))
        set_value(self.db, self.second, colour, add_option(self.db, colour, "Rot"))
        self.db.commit()
        target_id, source_ids = target.id, [color.id, colour.id]

        migrate_values = attribute_merger._migrate_values
        migrated_sources: list[int] = []

        def fail_on_second_source(*args: object) -> int:
            migrated_sources.append(args[1].id)
            if len(migrated_sources) == 2:
                raise RuntimeError("value store unavailable")
            return migrate_values(*args)

        with patch.object(attribute_merger, "_migrate_values", side_effect=fail_on_second_source):
            with self.assertLogs("attribute_insight.services.attribute_merger", level="ERROR"):
                with self.assertRaises(RuntimeError):
                    execute_merge(self.db, source_ids, target_id)

        self.assertEqual(migrated_sources, source_ids)
        self.assertEqual([label for _, label in base_option_labels(self.db, target_id)], ["Schwarz"])
        self.assertIsNone(get_value(self.db, self.first.id, target_id))
        self.assertIsNone(get_value(self.db, self.second.id, target_id))
        self.assertEqual(self.db.scalar(select(func.count()).select_from(AttributeMergeLog)), 0)

    def test_unknown_target_raises(self) -> None:
        source_id, _ = self._seed_text_pair()
        with self.assertRaises(NotFoundError):
            execute_merge(self.db, [source_id], 999_999)
        self.assertEqual(preview_merge(self.db, [source_id], 999_999).error, "Target attribute not found")

    def test_compatibility_rules(self) -> None:
        text = add_attribute(self.db, self.entity_type, "a_text")
        textarea = add_attribute(self.db, self.entity_type, "a_textarea", frontend_input="textarea")
        boolean = add_attribute(self.db, self.entity_type, "a_bool", frontend_input="boolean", backend_type="int")
        select_int = add_attribute(self.db, self.entity_type, "a_select", frontend_input="select", backend_type="int")
        long_text = add_attribute(self.db, self.entity_type, "a_long", frontend_input="textarea", backend_type="text")
        other_type = add_entity_type(self.db, "catalog_category")
        foreign = add_attribute(self.db, other_type, "a_text")

        self.assertTrue(check_compatibility(text, textarea).compatible)
        self.assertTrue(check_compatibility(boolean, select_int).compatible)
        self.assertFalse(check_compatibility(select_int, boolean).compatible)
        self.assertEqual(check_compatibility(text, long_text).reason, "Different backend types")
        self.assertEqual(check_compatibility(foreign, text).reason, "Different entity types")

    def test_preview_reports_counts_without_writing(self) -> None:
        source_id, target_id = self._seed_text_pair()
        missing_id = 999_999

        preview = preview_merge(self.db, [source_id, missing_id], target_id)

        self.assertEqual(preview.target.code, "breite")
        self.assertEqual(preview.data_migration[source_id].value_count, 2)
        self.assertEqual(preview.data_migration[source_id].conflict_count, 1)
        self.assertIn(f"Attribute {missing_id} not found", preview.warnings)
        self.assertEqual(preview.summary.total_sources, 2)
        self.assertEqual(preview.summary.compatible_sources, 1)
        self.assertEqual(preview.summary.total_values_to_migrate, 2)
        self.assertTrue(preview.summary.has_warnings)
        self.assertIsNone(get_value(self.db, self.second.id, target_id))
        self.assertEqual(self.db.scalar(select(func.count(AttributeMergeLog.id))), 0)

    def test_preview_lists_new_options(self) -> None:
        target = add_attribute(self.db, self.entity_type, "farbe", frontend_input="select", backend_type="int")
        source = add_attribute(self.db, self.entity_type, "color", frontend_input="select", backend_type="int")
        add_option(self.db, target, "Schwarz")
        add_option(self.db, source, "SCHWARZ")
        add_option(self.db, source, "Silber")
        self.db.commit()

        options = preview_merge(self.db, [source.id], target.id).options_merge[source.id]
        self.assertEqual((options.will_map, options.will_create), (1, 1))
        self.assertEqual(options.new_options, ["Silber"])
        self.assertEqual(len(base_option_labels(self.db, target.id)), 1)

    def test_rollback_restores_values_options_and_deleted_source(self) -> None:
        target = add_attribute(self.db, self.entity_type, "farbe", frontend_input="select", backend_type="int")
        source = add_attribute(self.db, self.entity_type, "color", frontend_input="select", backend_type="int")
        schwarz = add_option(self.db, target, "Schwarz")
        weiss = add_option(self.db, target, "Weiß")
        source_schwarz = add_option(self.db, source, "Schwarz")
        source_silber = add_option(self.db, source, "Silber")
        set_value(self.db, self.first, target, weiss)
        set_value(self.db, self.first, source, source_schwarz)
        set_value(self.db, self.second, source, source_silber)
        self.db.add(AttributeSetMember(attribute_set_id=self.attribute_set.id, attribute_id=source.id, sort_order=3))
        self.db.commit()
        source_id, target_id = source.id, target.id
        first_id, second_id = self.first.id, self.second.id

        result = execute_merge(self.db, [source_id], target_id, ConflictStrategy.KEEP_SOURCE, delete_source=True)
        self.assertEqual(result.sources_deleted, [source_id])
        self.assertIsNone(get_attribute(self.db, source_id))
        self.assertEqual(get_value(self.db, first_id, target_id), schwarz)

        rollback = rollback_merge(self.db, result.merge_log_id)

        self.assertTrue(rollback.rolled_back)
        self.assertEqual(rollback.values_restored, 2)
        self.assertEqual(rollback.options_removed, 1)
        self.assertEqual(rollback.sources_restored, [source_id])
        self.assertEqual(get_value(self.db, first_id, target_id), weiss)
        self.assertIsNone(get_value(self.db, second_id, target_id))
        self.assertEqual([label for _, label in base_option_labels(self.db, target_id)], ["Schwarz", "Weiß"])

        restored = get_attribute(self.db, source_id)
        self.assertEqual(restored.attribute_code, "color")
        self.assertEqual([label for _, label in base_option_labels(self.db, source_id)], ["Schwarz", "Silber"])
        self.assertEqual(get_value(self.db, second_id, source_id), source_silber)
        membership = self.db.scalar(select(AttributeSetMember).where(AttributeSetMember.attribute_id == source_id))
        self.assertEqual(membership.sort_order, 3)

        again = rollback_merge(self.db, result.merge_log_id)
        self.assertFalse(again.rolled_back)
        self.assertFalse(rollback_merge(self.db, 999_999).rolled_back)

    def test_merge_options_with_explicit_mapping(self) -> None:
        target = add_attribute(self.db, self.entity_type, "farbe", frontend_input="select", backend_type="int")
        source = add_attribute(self.db, self.entity_type, "color", frontend_input="select", backend_type="int")
        schwarz = add_option(self.db, target, "Schwarz")
        black = add_option(self.db, source, "Black")
        silver = add_option(self.db, source, "Silber", store_labels={1: "Silver"})
        self.db.commit()

        counts = merge_options(self.db, source.id, target.id, {black: schwarz, silver: None})

        self.assertEqual((counts.mapped, counts.created), (1, 1))
        self.assertEqual([label for _, label in base_option_labels(self.db, target.id)], ["Schwarz", "Silber"])
        with self.assertRaises(NotFoundError):
            merge_options(self.db, source.id, target.id, {schwarz: None})


if __name__ == "__main__":
    unittest.main()
