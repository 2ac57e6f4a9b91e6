"""Merge source attributes into a target attribute.

A merge runs per source: compatibility check, option remapping for select
targets, value migration under a conflict strategy and optional deletion of
the source. The whole batch shares one transaction; an incompatible source is
a soft failure recorded in the result. Each executed merge is logged with a
snapshot detailed enough for `rollback_merge()` to undo it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from time import perf_counter
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from attribute_insight.eav.backends import (
    ValueBackend,
    is_empty_value,
    value_backend_for,
    value_table_exists,
)
from attribute_insight.eav.catalog import base_option_labels, describe_attribute, get_attribute
from attribute_insight.errors import MergeError, NotFoundError
from attribute_insight.models.attribute import Attribute
from attribute_insight.models.attribute_merge_log import AttributeMergeLog
from attribute_insight.models.attribute_option import BASE_STORE_ID, AttributeOption, AttributeOptionValue
from attribute_insight.models.attribute_set import AttributeSetMember
from attribute_insight.schemas.merge import (
    CompatibilityResult,
    ConflictStrategy,
    DataMigrationInfo,
    FailedItem,
    MergedSource,
    MergePreview,
    MergePreviewSummary,
    MergeResult,
    OptionMergeCounts,
    OptionsMergeInfo,
    RollbackResult,
)

logger = logging.getLogger(__name__)

CONCATENATE_SEPARATOR = " | "

# Source input type -> target input types it may be merged into.
COMPATIBLE_INPUTS: dict[str, frozenset[str]] = {
    "text": frozenset({"text", "textarea"}),
    "textarea": frozenset({"text", "textarea"}),
    "select": frozenset({"select"}),
    "multiselect": frozenset({"multiselect"}),
    "boolean": frozenset({"boolean", "select"}),
    "date": frozenset({"date"}),
    "datetime": frozenset({"datetime", "date"}),
    "price": frozenset({"price", "text"}),
    "weight": frozenset({"weight", "text"}),
}


def resolve_conflict_strategy(value: ConflictStrategy | str | None) -> ConflictStrategy:
    """Map a strategy name to the enum; unknown names fall back to fill-empty."""

    if isinstance(value, ConflictStrategy):
        return value
    if value is None:
        return ConflictStrategy.FILL_EMPTY
    try:
        return ConflictStrategy(value)
    except ValueError:
        logger.warning("merge.unknown_conflict_strategy strategy=%s fallback=fill_empty", value)
        return ConflictStrategy.FILL_EMPTY


def check_compatibility(source: Attribute, target: Attribute) -> CompatibilityResult:
    if source.entity_type_id != target.entity_type_id:
        return CompatibilityResult(compatible=False, reason="Different entity types")
    if source.frontend_input != target.frontend_input:
        allowed = COMPATIBLE_INPUTS.get(source.frontend_input, frozenset({source.frontend_input}))
        if target.frontend_input not in allowed:
            return CompatibilityResult(
                compatible=False,
                reason=f"Incompatible types: {target.frontend_input} <- {source.frontend_input}",
            )
    if source.backend_type != target.backend_type:
        return CompatibilityResult(compatible=False, reason="Different backend types")
    return CompatibilityResult(compatible=True)


def preview_merge(db: Session, source_ids: Sequence[int], target_id: int) -> MergePreview:
    """Dry run of `execute_merge()`; never writes."""

    target = get_attribute(db, target_id)
    if target is None:
        return MergePreview(error="Target attribute not found")

    preview = MergePreview(target=describe_attribute(target))
    compatible_sources = 0
    total_values = 0
    for source_id in source_ids:
        source = get_attribute(db, source_id)
        if source is None:
            preview.warnings.append(f"Attribute {source_id} not found")
            continue
        preview.sources.append(describe_attribute(source))

        compatibility = check_compatibility(source, target)
        preview.compatibility[source.id] = compatibility
        if not compatibility.compatible:
            preview.warnings.append(f"Attribute {source.attribute_code} not compatible: {compatibility.reason}")
            continue
        compatible_sources += 1

        migration = _preview_values(db, source, target)
        preview.data_migration[source.id] = migration
        total_values += migration.value_count
        if target.is_select:
            preview.options_merge[source.id] = _preview_options(db, source, target)

    preview.summary = MergePreviewSummary(
        total_sources=len(source_ids),
        compatible_sources=compatible_sources,
        total_values_to_migrate=total_values,
        has_warnings=bool(preview.warnings),
    )
    return preview


def execute_merge(
    db: Session,
    source_ids: Sequence[int],
    target_id: int,
    conflict_strategy: ConflictStrategy | str = ConflictStrategy.KEEP_TARGET,
    delete_source: bool = False,
) -> MergeResult:
    """Merge every source into the target in one transaction.

    Raises NotFoundError for an unknown target. Any unexpected failure rolls
    back the whole batch and propagates.
    """

    strategy = resolve_conflict_strategy(conflict_strategy)
    started = perf_counter()
    logger.info(
        "merge.started target=%d sources=%s strategy=%s delete_source=%s",
        target_id,
        list(source_ids),
        strategy.value,
        delete_source,
    )
    try:
        # Concurrent merges into one target serialize on this row lock.
        target = db.scalar(select(Attribute).where(Attribute.id == target_id).with_for_update())
        if target is None:
            raise NotFoundError(f"Target attribute {target_id} not found")

        result = MergeResult()
        snapshot: dict[str, list[Any]] = {
            "target_values": [],
            "created_option_ids": [],
            "deleted_sources": [],
        }
        for source_id in source_ids:
            source = get_attribute(db, source_id)
            if source is None:
                result.failed.append(FailedItem(id=source_id, reason="Not found"))
                continue
            if source.id == target.id:
                result.failed.append(FailedItem(id=source_id, reason="Source and target are the same attribute"))
                continue
            compatibility = check_compatibility(source, target)
            if not compatibility.compatible:
                result.failed.append(FailedItem(id=source_id, reason=compatibility.reason or "Incompatible"))
                continue

            option_map: dict[int, int] = {}
            options_merged = 0
            if target.is_select:
                option_map, created_ids, options_merged = _merge_options_by_label(db, source, target)
                snapshot["created_option_ids"].extend(created_ids)

            values_migrated = _migrate_values(db, source, target, strategy, option_map, snapshot["target_values"])
            result.merged.append(
                MergedSource(
                    source_id=source.id,
                    source_code=source.attribute_code,
                    values_migrated=values_migrated,
                    options_merged=options_merged,
                )
            )
            result.values_migrated += values_migrated
            result.options_merged += options_merged

            if delete_source:
                snapshot["deleted_sources"].append(delete_attribute(db, source))
                result.sources_deleted.append(source_id)

        if result.merged:
            merge_log = AttributeMergeLog(
                target_attribute_id=target.id,
                source_attribute_ids_json=[item.source_id for item in result.merged],
                conflict_strategy=strategy.value,
                delete_source=delete_source,
                result_json=result.model_dump(mode="json", exclude={"merge_log_id"}),
                snapshot_json=snapshot,
            )
            db.add(merge_log)
            db.flush()
            result.merge_log_id = merge_log.id

        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "merge.failed target=%d sources=%s elapsed_ms=%.2f",
            target_id,
            list(source_ids),
            (perf_counter() - started) * 1000.0,
        )
        raise

    logger.info(
        "merge.completed target=%d merged=%d failed=%d values_migrated=%d options_merged=%d merge_log_id=%s total_ms=%.2f",
        target_id,
        len(result.merged),
        len(result.failed),
        result.values_migrated,
        result.options_merged,
        result.merge_log_id,
        (perf_counter() - started) * 1000.0,
    )
    return result


def merge_options(
    db: Session,
    source_id: int,
    target_id: int,
    option_mapping: dict[int, int | None],
) -> OptionMergeCounts:
    """Apply an explicit source-option -> target-option mapping.

    A `None` target copies the source option, with all its store labels, onto
    the target attribute; any other value counts as already mapped.
    """

    source = get_attribute(db, source_id)
    target = get_attribute(db, target_id)
    if source is None or target is None:
        raise NotFoundError("Source or target attribute not found")

    counts = OptionMergeCounts()
    try:
        for source_option_id, target_option_id in option_mapping.items():
            if target_option_id is not None:
                counts.mapped += 1
                continue
            option = db.scalar(
                select(AttributeOption).where(
                    AttributeOption.id == source_option_id,
                    AttributeOption.attribute_id == source.id,
                )
            )
            if option is None:
                raise NotFoundError(f"Option {source_option_id} does not belong to attribute {source.id}")
            _copy_option(db, option, target.id)
            counts.created += 1
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("merge.options_failed source=%d target=%d", source_id, target_id)
        raise

    logger.info(
        "merge.options_applied source=%d target=%d mapped=%d created=%d",
        source_id,
        target_id,
        counts.mapped,
        counts.created,
    )
    return counts


def delete_attribute(db: Session, attribute: Attribute) -> dict[str, Any]:
    """Hard-delete an attribute with its values, options and set memberships.

    Returns a JSON-safe copy of everything removed. Does not commit.
    """

    snapshot = snapshot_attribute(db, attribute)
    backend = value_backend_for(attribute.backend_type)
    if backend is not None and value_table_exists(db, backend):
        db.execute(delete(backend.model).where(backend.model.attribute_id == attribute.id))

    option_ids = select(AttributeOption.id).where(AttributeOption.attribute_id == attribute.id)
    db.execute(delete(AttributeOptionValue).where(AttributeOptionValue.option_id.in_(option_ids)))
    db.execute(delete(AttributeOption).where(AttributeOption.attribute_id == attribute.id))
    db.execute(delete(AttributeSetMember).where(AttributeSetMember.attribute_id == attribute.id))
    db.delete(attribute)
    db.flush()
    logger.info("attribute.deleted attribute_id=%d code=%s", snapshot["id"], snapshot["attribute_code"])
    return snapshot


def snapshot_attribute(db: Session, attribute: Attribute) -> dict[str, Any]:
    options = []
    for option in db.scalars(
        select(AttributeOption).where(AttributeOption.attribute_id == attribute.id).order_by(AttributeOption.id)
    ):
        labels = db.execute(
            select(AttributeOptionValue.store_id, AttributeOptionValue.value)
            .where(AttributeOptionValue.option_id == option.id)
            .order_by(AttributeOptionValue.store_id)
        ).all()
        options.append(
            {
                "id": option.id,
                "sort_order": option.sort_order,
                "labels": [{"store_id": store_id, "value": value} for store_id, value in labels],
            }
        )

    values = []
    backend = value_backend_for(attribute.backend_type)
    if backend is not None and value_table_exists(db, backend):
        model = backend.model
        for row in db.scalars(select(model).where(model.attribute_id == attribute.id).order_by(model.id)):
            values.append(
                {"entity_id": row.entity_id, "store_id": row.store_id, "value": backend.serialize(row.value)}
            )

    memberships = db.execute(
        select(AttributeSetMember.attribute_set_id, AttributeSetMember.sort_order).where(
            AttributeSetMember.attribute_id == attribute.id
        )
    ).all()
    return {
        "id": attribute.id,
        "entity_type_id": attribute.entity_type_id,
        "attribute_code": attribute.attribute_code,
        "frontend_label": attribute.frontend_label,
        "frontend_input": attribute.frontend_input,
        "backend_type": attribute.backend_type,
        "is_user_defined": attribute.is_user_defined,
        "options": options,
        "values": values,
        "set_memberships": [
            {"attribute_set_id": set_id, "sort_order": sort_order} for set_id, sort_order in memberships
        ],
    }


def rollback_merge(db: Session, merge_log_id: int) -> RollbackResult:
    """Restore the pre-merge state recorded in a merge log.

    Unknown or already rolled-back logs yield `rolled_back=False`.
    """

    merge_log = db.scalar(select(AttributeMergeLog).where(AttributeMergeLog.id == merge_log_id))
    if merge_log is None or merge_log.rolled_back_at is not None:
        return RollbackResult(merge_log_id=merge_log_id, rolled_back=False)

    started = perf_counter()
    snapshot = merge_log.snapshot_json or {}
    result = RollbackResult(merge_log_id=merge_log_id, rolled_back=True)
    try:
        for entry in reversed(snapshot.get("target_values", [])):
            _restore_target_value(db, merge_log.target_attribute_id, entry)
            result.values_restored += 1

        created_option_ids = list(snapshot.get("created_option_ids", []))
        if created_option_ids:
            db.execute(delete(AttributeOptionValue).where(AttributeOptionValue.option_id.in_(created_option_ids)))
            db.execute(delete(AttributeOption).where(AttributeOption.id.in_(created_option_ids)))
            result.options_removed = len(created_option_ids)

        for source in snapshot.get("deleted_sources", []):
            _restore_attribute(db, source)
            result.sources_restored.append(source["id"])

        merge_log.rolled_back_at = datetime.now(timezone.utc)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("merge.rollback_failed merge_log_id=%d", merge_log_id)
        raise

    logger.info(
        "merge.rolled_back merge_log_id=%d values_restored=%d options_removed=%d sources_restored=%s total_ms=%.2f",
        merge_log_id,
        result.values_restored,
        result.options_removed,
        result.sources_restored,
        (perf_counter() - started) * 1000.0,
    )
    return result


def list_merge_logs(db: Session, target_attribute_id: int | None = None) -> list[AttributeMergeLog]:
    stmt = select(AttributeMergeLog)
    if target_attribute_id is not None:
        stmt = stmt.where(AttributeMergeLog.target_attribute_id == target_attribute_id)
    return list(db.scalars(stmt.order_by(AttributeMergeLog.id.desc())))


def _preview_values(db: Session, source: Attribute, target: Attribute) -> DataMigrationInfo:
    backend = value_backend_for(source.backend_type)
    if backend is None or not value_table_exists(db, backend):
        return DataMigrationInfo()

    model = backend.model
    source_keys = set(
        db.execute(
            select(model.entity_id, model.store_id).where(
                model.attribute_id == source.id,
                backend.filled_condition(),
            )
        ).all()
    )
    target_keys = set(
        db.execute(
            select(model.entity_id, model.store_id).where(
                model.attribute_id == target.id,
                backend.filled_condition(),
            )
        ).all()
    )
    conflicts = len(source_keys & target_keys)
    return DataMigrationInfo(
        value_count=len(source_keys),
        conflict_count=conflicts,
        note=f"{conflicts} values would conflict" if conflicts else None,
    )


def _preview_options(db: Session, source: Attribute, target: Attribute) -> OptionsMergeInfo:
    source_labels = base_option_labels(db, source.id)
    target_labels = base_option_labels(db, target.id)
    known = {label.lower() for _, label in target_labels}
    new_options = [label for _, label in source_labels if label.lower() not in known]
    return OptionsMergeInfo(
        source_options=len(source_labels),
        target_options=len(target_labels),
        will_map=len(source_labels) - len(new_options),
        will_create=len(new_options),
        new_options=new_options,
    )


def _merge_options_by_label(
    db: Session,
    source: Attribute,
    target: Attribute,
) -> tuple[dict[int, int], list[int], int]:
    """Map source options onto target options by lower-cased base label.

    Unmatched source options are copied onto the target. Returns the id map,
    the created option ids and the number of source options handled.
    """

    by_label = {label.lower(): option_id for option_id, label in base_option_labels(db, target.id)}
    option_map: dict[int, int] = {}
    created_ids: list[int] = []
    for option_id, label in base_option_labels(db, source.id):
        key = label.lower()
        if key in by_label:
            option_map[option_id] = by_label[key]
            continue
        option = db.get(AttributeOption, option_id)
        if option is None:
            continue
        copied = _copy_option(db, option, target.id)
        by_label[key] = copied.id
        option_map[option_id] = copied.id
        created_ids.append(copied.id)
    return option_map, created_ids, len(option_map)


def _copy_option(db: Session, option: AttributeOption, target_attribute_id: int) -> AttributeOption:
    copied = AttributeOption(attribute_id=target_attribute_id, sort_order=option.sort_order)
    db.add(copied)
    db.flush()
    labels = db.scalars(select(AttributeOptionValue).where(AttributeOptionValue.option_id == option.id))
    for label in labels:
        db.add(AttributeOptionValue(option_id=copied.id, store_id=label.store_id, value=label.value))
    db.flush()
    return copied


def _migrate_values(
    db: Session,
    source: Attribute,
    target: Attribute,
    strategy: ConflictStrategy,
    option_map: dict[int, int],
    target_snapshot: list[dict[str, Any]],
) -> int:
    backend = value_backend_for(source.backend_type)
    if backend is None or not value_table_exists(db, backend):
        return 0

    model = backend.model
    rows = list(db.scalars(select(model).where(model.attribute_id == source.id).order_by(model.id)))
    migrated = 0
    for row in rows:
        value = _remap_options(row.value, option_map, multiselect=target.frontend_input == "multiselect")
        if is_empty_value(value):
            continue
        existing = db.scalar(
            select(model).where(
                model.attribute_id == target.id,
                model.entity_id == row.entity_id,
                model.store_id == row.store_id,
            )
        )
        new_value = _resolve_conflict(backend, strategy, None if existing is None else existing.value, value)
        if new_value is None:
            continue

        target_snapshot.append(
            {
                "backend_type": backend.backend_type.value,
                "entity_id": row.entity_id,
                "store_id": row.store_id,
                "inserted": existing is None,
                "previous": None if existing is None else backend.serialize(existing.value),
            }
        )
        if existing is None:
            db.add(
                model(
                    attribute_id=target.id,
                    entity_id=row.entity_id,
                    store_id=row.store_id,
                    value=backend.coerce(new_value),
                )
            )
        else:
            existing.value = backend.coerce(new_value)
        db.flush()
        migrated += 1
    return migrated


def _resolve_conflict(backend: ValueBackend, strategy: ConflictStrategy, existing: Any, incoming: Any) -> Any:
    """Value to write for the target row, or None to leave it untouched."""

    if is_empty_value(existing):
        return incoming
    match strategy:
        case ConflictStrategy.KEEP_SOURCE:
            return incoming
        case ConflictStrategy.CONCATENATE if backend.textual:
            return f"{existing}{CONCATENATE_SEPARATOR}{incoming}"
        case _:
            return None


def _remap_options(value: Any, option_map: dict[int, int], *, multiselect: bool) -> Any:
    if not option_map or is_empty_value(value):
        return value
    if multiselect:
        parts = [part.strip() for part in str(value).split(",") if part.strip()]
        return ",".join(
            str(option_map.get(int(part), part)) if part.isdigit() else part for part in parts
        )
    try:
        return option_map.get(int(value), value)
    except (TypeError, ValueError):
        return value


def _restore_target_value(db: Session, target_id: int, entry: dict[str, Any]) -> None:
    backend = value_backend_for(entry.get("backend_type"))
    if backend is None:
        raise MergeError(f"Merge log references unknown backend type {entry.get('backend_type')!r}")
    model = backend.model
    row = db.scalar(
        select(model).where(
            model.attribute_id == target_id,
            model.entity_id == entry["entity_id"],
            model.store_id == entry["store_id"],
        )
    )
    if entry.get("inserted"):
        if row is not None:
            db.delete(row)
    elif row is None:
        db.add(
            model(
                attribute_id=target_id,
                entity_id=entry["entity_id"],
                store_id=entry["store_id"],
                value=backend.coerce(entry.get("previous")),
            )
        )
    else:
        row.value = backend.coerce(entry.get("previous"))
    db.flush()


def _restore_attribute(db: Session, source: dict[str, Any]) -> None:
    taken = db.scalar(
        select(func.count(Attribute.id)).where(
            Attribute.entity_type_id == source["entity_type_id"],
            Attribute.attribute_code == source["attribute_code"],
        )
    )
    if taken:
        raise MergeError(f"Attribute code {source['attribute_code']!r} is in use; cannot restore")

    db.add(
        Attribute(
            id=source["id"],
            entity_type_id=source["entity_type_id"],
            attribute_code=source["attribute_code"],
            frontend_label=source["frontend_label"],
            frontend_input=source["frontend_input"],
            backend_type=source["backend_type"],
            is_user_defined=source["is_user_defined"],
        )
    )
    db.flush()
    for option in source.get("options", []):
        db.add(AttributeOption(id=option["id"], attribute_id=source["id"], sort_order=option["sort_order"]))
        db.flush()
        for label in option.get("labels", []):
            db.add(
                AttributeOptionValue(
                    option_id=option["id"],
                    store_id=label.get("store_id", BASE_STORE_ID),
                    value=label["value"],
                )
            )

    backend = value_backend_for(source["backend_type"])
    if backend is not None:
        for value in source.get("values", []):
            db.add(
                backend.model(
                    attribute_id=source["id"],
                    entity_id=value["entity_id"],
                    store_id=value["store_id"],
                    value=backend.coerce(value["value"]),
                )
            )
    for membership in source.get("set_memberships", []):
        db.add(
            AttributeSetMember(
                attribute_set_id=membership["attribute_set_id"],
                attribute_id=source["id"],
                sort_order=membership["sort_order"],
            )
        )
    db.flush()
