"""Interactive construction of a query configuration.

The builder mutates one QueryConfiguration in place and tells its listeners
after every change. It never rejects input after the fact: choices that would
make the configuration invalid (fields outside the active catalog, unknown
operators) are simply not applied, and index-based edits with a stale index
are ignored.
"""

from collections.abc import Callable, Mapping
from typing import Any

from crm_reports.catalog.data_sources import (
    DataSource,
    FieldInfo,
    get_fields,
    is_valid_field,
    parse_data_source,
    valid_fields,
)
from crm_reports.catalog.registry import DataSourceDefinition, list_definitions
from crm_reports.common.logging import get_logger
from crm_reports.query.model import (
    FilterOperator,
    FilterPredicate,
    FilterValue,
    QueryConfiguration,
    SortDirection,
    SortKey,
    VisualizationType,
    kind_for_field,
    parse_direction,
    parse_operator,
    parse_visualization,
)

logger = get_logger(__name__)

ChangeListener = Callable[[QueryConfiguration], None]


class QueryBuilder:
    """Builds a QueryConfiguration one user action at a time.

    Usage:
        builder = QueryBuilder(on_change=lambda cfg: session.schedule_refresh())
        builder.set_data_source("deals")
        builder.toggle_field("name", True)
        builder.toggle_field("value", True)
        index = builder.add_filter()
        builder.update_filter(index, field="status", value="won")
    """

    def __init__(
        self,
        configuration: QueryConfiguration | None = None,
        on_change: ChangeListener | None = None,
    ):
        """Initialize the builder.

        Args:
            configuration: Configuration to edit. A fresh, empty one if omitted.
            on_change: Listener called with the configuration after each change.
        """
        self.configuration = configuration or QueryConfiguration()
        self._listeners: list[ChangeListener] = []
        if on_change is not None:
            self._listeners.append(on_change)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A function that unregisters the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self.configuration)

    @property
    def data_source(self) -> DataSource | None:
        return self.configuration.data_source

    # --- Data source and visualization ---

    def set_data_source(self, source: DataSource | str | None) -> None:
        """Switch data source.

        Field identifiers are not shared across sources, so every selection
        made for the previous source is cleared.
        """
        cfg = self.configuration
        cfg.data_source = parse_data_source(source)
        cfg.fields = []
        cfg.filters = []
        cfg.sorting = []
        cfg.grouping = []
        cfg.comparison_fields = []
        logger.debug(
            "data_source_selected",
            data_source=cfg.data_source.value if cfg.data_source else None,
        )
        self._changed()

    def set_visualization_type(self, visualization: VisualizationType | str) -> None:
        """Choose how rows are displayed. Other selections stay as they are."""
        resolved = parse_visualization(visualization)
        if resolved is None:
            return
        self.configuration.visualization_type = resolved
        self._changed()

    # --- Fields ---

    def toggle_field(self, field_id: str, included: bool) -> None:
        """Include or exclude a field.

        Included fields keep the order in which they were switched on, so
        toggling a field off and on again moves it to the end.
        """
        fields = self.configuration.fields
        if included:
            if field_id in fields or not is_valid_field(self.data_source, field_id):
                return
            fields.append(field_id)
        else:
            if field_id not in fields:
                return
            fields.remove(field_id)
        self._changed()

    def set_grouping(self, field_ids: list[str]) -> None:
        """Set the grouping fields (catalog-valid ones only)."""
        self.configuration.grouping = valid_fields(self.data_source, field_ids)
        self._changed()

    def set_comparison_fields(self, field_ids: list[str]) -> None:
        """Set the fields plotted by the comparison chart.

        At most the first two valid fields are kept; fewer than two is allowed
        and makes the comparison chart show its explanatory placeholder.
        """
        self.configuration.comparison_fields = valid_fields(
            self.data_source, field_ids
        )[:2]
        self._changed()

    # --- Filters ---

    def add_filter(self) -> int:
        """Append a blank filter.

        Returns:
            Index of the new filter.
        """
        self.configuration.filters.append(FilterPredicate())
        self._changed()
        return len(self.configuration.filters) - 1

    def update_filter(
        self,
        index: int,
        partial: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> bool:
        """Merge changes into the filter at ``index``.

        Accepts ``field``, ``operator`` and ``value`` either as a mapping or as
        keyword arguments. ``value`` may be a plain string or a FilterValue.

        Returns:
            True if the filter was updated, False for a stale index.
        """
        filters = self.configuration.filters
        if not 0 <= index < len(filters):
            logger.debug("filter_index_out_of_range", index=index, size=len(filters))
            return False

        merged = {**(partial or {}), **changes}
        predicate = filters[index]
        field_id = predicate.field
        operator = predicate.operator
        value = predicate.value

        if "field" in merged:
            candidate = str(merged["field"] or "")
            if candidate == "" or is_valid_field(self.data_source, candidate):
                field_id = candidate
                value = value.with_kind(kind_for_field(self.data_source, field_id))

        if "operator" in merged:
            operator = parse_operator(merged["operator"]) or operator

        if "value" in merged:
            raw_value = merged["value"]
            if isinstance(raw_value, FilterValue):
                value = raw_value
            else:
                value = FilterValue(
                    kind_for_field(self.data_source, field_id),
                    "" if raw_value is None else str(raw_value),
                )

        filters[index] = FilterPredicate(field_id, operator, value)
        self._changed()
        return True

    def remove_filter(self, index: int) -> bool:
        """Remove the filter at ``index`` (no-op for a stale index)."""
        filters = self.configuration.filters
        if not 0 <= index < len(filters):
            return False
        del filters[index]
        self._changed()
        return True

    # --- Sorting ---

    def add_sort(self) -> int:
        """Append a blank ascending sort key.

        Returns:
            Index of the new sort key.
        """
        self.configuration.sorting.append(SortKey())
        self._changed()
        return len(self.configuration.sorting) - 1

    def update_sort(
        self,
        index: int,
        partial: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> bool:
        """Merge ``field`` / ``direction`` changes into the sort key at ``index``.

        Returns:
            True if the sort key was updated, False for a stale index.
        """
        sorting = self.configuration.sorting
        if not 0 <= index < len(sorting):
            logger.debug("sort_index_out_of_range", index=index, size=len(sorting))
            return False

        merged = {**(partial or {}), **changes}
        key = sorting[index]
        field_id = key.field
        direction = key.direction

        if "field" in merged:
            candidate = str(merged["field"] or "")
            if candidate == "" or is_valid_field(self.data_source, candidate):
                field_id = candidate

        if "direction" in merged:
            direction = parse_direction(merged["direction"]) or direction

        sorting[index] = SortKey(field_id, direction)
        self._changed()
        return True

    def remove_sort(self, index: int) -> bool:
        """Remove the sort key at ``index`` (no-op for a stale index)."""
        sorting = self.configuration.sorting
        if not 0 <= index < len(sorting):
            return False
        del sorting[index]
        self._changed()
        return True

    # --- Choices offered by selection widgets ---

    def available_fields(self) -> tuple[FieldInfo, ...]:
        """Fields selectable for the active data source."""
        return get_fields(self.data_source)

    @staticmethod
    def available_data_sources() -> list[DataSourceDefinition]:
        return list_definitions()

    @staticmethod
    def available_operators() -> list[FilterOperator]:
        return list(FilterOperator)

    @staticmethod
    def available_directions() -> list[SortDirection]:
        return list(SortDirection)

    @staticmethod
    def available_visualizations() -> list[VisualizationType]:
        return list(VisualizationType)
