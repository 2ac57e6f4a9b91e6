"""initial schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:01
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

VALUE_TABLES = {
    "catalog_entity_varchar": sa.String(length=255),
    "catalog_entity_text": sa.Text(),
    "catalog_entity_int": sa.Integer(),
    "catalog_entity_decimal": sa.Numeric(precision=20, scale=6),
    "catalog_entity_datetime": sa.DateTime(timezone=False),
}


def upgrade() -> None:
    op.create_table(
        "eav_entity_types",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("entity_label", sa.String(length=255), nullable=True),
        sa.Column("default_attribute_set_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_eav_entity_types_code", "eav_entity_types", ["code"], unique=True)

    op.create_table(
        "eav_attributes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entity_type_id", sa.Integer(), nullable=False),
        sa.Column("attribute_code", sa.String(length=255), nullable=False),
        sa.Column("frontend_label", sa.String(length=255), nullable=True),
        sa.Column("frontend_input", sa.String(length=32), nullable=False),
        sa.Column("backend_type", sa.String(length=16), nullable=False),
        sa.Column("is_user_defined", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["entity_type_id"], ["eav_entity_types.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("entity_type_id", "attribute_code"),
    )
    op.create_index("ix_eav_attributes_entity_type_id", "eav_attributes", ["entity_type_id"], unique=False)
    op.create_index("ix_eav_attributes_attribute_code", "eav_attributes", ["attribute_code"], unique=False)

    op.create_table(
        "eav_attribute_options",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("attribute_id", sa.Integer(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["attribute_id"], ["eav_attributes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_eav_attribute_options_attribute_id", "eav_attribute_options", ["attribute_id"], unique=False)

    op.create_table(
        "eav_attribute_option_values",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("option_id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("value", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(["option_id"], ["eav_attribute_options.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_eav_attribute_option_values_option_id",
        "eav_attribute_option_values",
        ["option_id"],
        unique=False,
    )

    op.create_table(
        "eav_attribute_sets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entity_type_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(["entity_type_id"], ["eav_entity_types.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("entity_type_id", "name"),
    )
    op.create_index("ix_eav_attribute_sets_entity_type_id", "eav_attribute_sets", ["entity_type_id"], unique=False)

    op.create_table(
        "eav_attribute_set_members",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("attribute_set_id", sa.Integer(), nullable=False),
        sa.Column("attribute_id", sa.Integer(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["attribute_set_id"], ["eav_attribute_sets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["attribute_id"], ["eav_attributes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("attribute_set_id", "attribute_id"),
    )
    op.create_index(
        "ix_eav_attribute_set_members_attribute_set_id",
        "eav_attribute_set_members",
        ["attribute_set_id"],
        unique=False,
    )
    op.create_index(
        "ix_eav_attribute_set_members_attribute_id",
        "eav_attribute_set_members",
        ["attribute_id"],
        unique=False,
    )

    op.create_table(
        "catalog_entities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entity_type_id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("type_id", sa.String(length=32), nullable=False),
        sa.Column("attribute_set_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["entity_type_id"], ["eav_entity_types.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["attribute_set_id"], ["eav_attribute_sets.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_catalog_entities_entity_type_id", "catalog_entities", ["entity_type_id"], unique=False)
    op.create_index("ix_catalog_entities_sku", "catalog_entities", ["sku"], unique=False)
    op.create_index("ix_catalog_entities_attribute_set_id", "catalog_entities", ["attribute_set_id"], unique=False)

    op.create_table(
        "catalog_entity_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("category_name", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(["entity_id"], ["catalog_entities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_catalog_entity_categories_entity_id",
        "catalog_entity_categories",
        ["entity_id"],
        unique=False,
    )

    for table_name, value_type in VALUE_TABLES.items():
        op.create_table(
            table_name,
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("attribute_id", sa.Integer(), nullable=False),
            sa.Column("entity_id", sa.Integer(), nullable=False),
            sa.Column("store_id", sa.Integer(), nullable=False),
            sa.Column("value", value_type, nullable=True),
            sa.ForeignKeyConstraint(["attribute_id"], ["eav_attributes.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["entity_id"], ["catalog_entities.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("attribute_id", "store_id", "entity_id"),
        )
        op.create_index(f"ix_{table_name}_attribute_id", table_name, ["attribute_id"], unique=False)
        op.create_index(f"ix_{table_name}_entity_id", table_name, ["entity_id"], unique=False)

    op.create_table(
        "approval_proposals",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("proposal_type", sa.String(length=32), nullable=False),
        sa.Column("payload_json", sa.JSON(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_comment", sa.Text(), nullable=True),
        sa.Column("rejected_by", sa.Integer(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("executed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("execution_result_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_approval_proposals_status", "approval_proposals", ["status"], unique=False)

    op.create_table(
        "attribute_merge_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("target_attribute_id", sa.Integer(), nullable=False),
        sa.Column("source_attribute_ids_json", sa.JSON(), nullable=False),
        sa.Column("conflict_strategy", sa.String(length=32), nullable=False),
        sa.Column("delete_source", sa.Boolean(), nullable=False),
        sa.Column("result_json", sa.JSON(), nullable=False),
        sa.Column("snapshot_json", sa.JSON(), nullable=False),
        sa.Column("rolled_back_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_attribute_merge_logs_target_attribute_id",
        "attribute_merge_logs",
        ["target_attribute_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_attribute_merge_logs_target_attribute_id", table_name="attribute_merge_logs")
    op.drop_table("attribute_merge_logs")
    op.drop_index("ix_approval_proposals_status", table_name="approval_proposals")
    op.drop_table("approval_proposals")

    for table_name in reversed(list(VALUE_TABLES)):
        op.drop_index(f"ix_{table_name}_entity_id", table_name=table_name)
        op.drop_index(f"ix_{table_name}_attribute_id", table_name=table_name)
        op.drop_table(table_name)

    op.drop_index("ix_catalog_entity_categories_entity_id", table_name="catalog_entity_categories")
    op.drop_table("catalog_entity_categories")
    op.drop_index("ix_catalog_entities_attribute_set_id", table_name="catalog_entities")
    op.drop_index("ix_catalog_entities_sku", table_name="catalog_entities")
    op.drop_index("ix_catalog_entities_entity_type_id", table_name="catalog_entities")
    op.drop_table("catalog_entities")
    op.drop_index("ix_eav_attribute_set_members_attribute_id", table_name="eav_attribute_set_members")
    op.drop_index("ix_eav_attribute_set_members_attribute_set_id", table_name="eav_attribute_set_members")
    op.drop_table("eav_attribute_set_members")
    op.drop_index("ix_eav_attribute_sets_entity_type_id", table_name="eav_attribute_sets")
    op.drop_table("eav_attribute_sets")
    op.drop_index("ix_eav_attribute_option_values_option_id", table_name="eav_attribute_option_values")
    op.drop_table("eav_attribute_option_values")
    op.drop_index("ix_eav_attribute_options_attribute_id", table_name="eav_attribute_options")
    op.drop_table("eav_attribute_options")
    op.drop_index("ix_eav_attributes_attribute_code", table_name="eav_attributes")
    op.drop_index("ix_eav_attributes_entity_type_id", table_name="eav_attributes")
    op.drop_table("eav_attributes")
    op.drop_index("ix_eav_entity_types_code", table_name="eav_entity_types")
    op.drop_table("eav_entity_types")
