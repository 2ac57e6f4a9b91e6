"""Attribute merge log with the pre-merge snapshot used for rollback."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from attribute_insight.models.base import Base, CreatedAtMixin, IdMixin


class AttributeMergeLog(Base, IdMixin, CreatedAtMixin):
    """One executed merge; `snapshot_json` holds everything needed to undo it."""

    __tablename__ = "attribute_merge_logs"

    target_attribute_id: Mapped[int] = mapped_column(index=True, nullable=False)
    source_attribute_ids_json: Mapped[list[int]] = mapped_column(JSON, default=list, nullable=False)
    conflict_strategy: Mapped[str] = mapped_column(String(32), nullable=False)
    delete_source: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    result_json: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    snapshot_json: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    rolled_back_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
