"""Spacing and behaviour options for both layout strategies."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from reqflow.diagnostics import DiagnosticCode, Diagnostics, ensure

# Height multiplier applied per optional content block (note, snippet).
CONTENT_GROWTH: float = 0.2

DEFAULT_HANDLE_SLOTS: tuple[str, ...] = ("right-top", "right-middle", "right-bottom")


class LayoutConfig(BaseModel):
    """Configuration options for the layout strategies.

    Accepts snake_case field names or the camelCase names used by the
    front-end (``interEntityGap``, ``rankGap``...).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")

    # Shared spacing
    inter_entity_gap: float = Field(default=40, ge=0, description="Vertical gap between entities of one group")
    inter_group_gap: float = Field(default=240, ge=0, description="Vertical gap between group clusters")
    rank_gap: float = Field(default=120, ge=0, description="Horizontal gap between layered ranks")
    min_cluster_height: float = Field(default=220, ge=0, description="Minimum height reserved per cluster")
    enable_multi_parent_adjustment: bool = Field(
        default=False, description="Move multi-parent entities to the mean y of their parents"
    )
    cluster_mode: Literal["spread", "sequential", "none"] = Field(
        default="spread", description="Post-processing applied to raw layered positions"
    )

    # Node geometry
    entity_width: float = Field(default=320, gt=0, description="Rendered entity width")
    base_height: float = Field(default=100, gt=0, description="Entity height without optional content")
    group_width: float = Field(default=220, gt=0, description="Group header width")
    group_height: float = Field(default=65, gt=0, description="Group header height")
    show_notes: bool = Field(default=True, description="Whether note content counts toward height")

    # Columnar layout
    column_width: float = Field(default=350, gt=0, description="Width of one subject-area column")
    column_gap: float = Field(default=150, ge=0, description="Gap between columns")
    header_height: float = Field(default=100, ge=0, description="Height of the column header slot")
    header_gap: float = Field(default=40, ge=0, description="Gap between header slot and first row")
    origin_x: float = Field(default=0, description="Left edge of the first column")
    origin_y: float = Field(default=0, description="Top edge of the header row")

    # Edges
    anchor_orphans: bool = Field(
        default=True, description="Connect entities without any relationship to their group header"
    )
    handle_slots: tuple[str, ...] = Field(
        default=DEFAULT_HANDLE_SLOTS, min_length=1, description="Rotation of source handle names"
    )

    @classmethod
    def from_options(
        cls,
        options: LayoutConfig | Mapping[str, Any] | None,
        diagnostics: Diagnostics | None = None,
    ) -> LayoutConfig:
        """Build a config from user options.

        Options that fail validation are dropped one by one and reported, so
        they take their defaults while every valid option is kept.
        """
        diagnostics = ensure(diagnostics)
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if not isinstance(options, Mapping):
            diagnostics.report(
                DiagnosticCode.INVALID_CONFIG,
                "layout options must be a mapping, using defaults",
                received=type(options).__name__,
            )
            return cls()
        try:
            return cls.model_validate(options)
        except ValidationError as exc:
            failing = {str(e["loc"][0]) for e in exc.errors() if e["loc"]}

        kept: dict[str, Any] = {}
        for key, value in options.items():
            if key in failing or (isinstance(key, str) and to_camel(key) in failing):
                diagnostics.report(
                    DiagnosticCode.INVALID_CONFIG,
                    "invalid layout option, using its default",
                    option=key,
                    value=value,
                )
                continue
            kept[key] = value
        try:
            return cls.model_validate(kept)
        except ValidationError as exc:
            diagnostics.report(
                DiagnosticCode.INVALID_CONFIG,
                "invalid layout options, using defaults",
                errors=[e["loc"] for e in exc.errors()],
            )
            return cls()

    def estimate_height(self, has_note: bool, has_snippet: bool) -> float:
        """Estimated rendered height from content flags."""
        height = self.base_height
        if has_note and self.show_notes:
            height *= 1 + CONTENT_GROWTH
        if has_snippet:
            height *= 1 + CONTENT_GROWTH
        return height
