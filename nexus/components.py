"""
Editing helpers for a site's component list.

All mutations keep ``order`` dense: after any insert, remove or reorder the
records are renumbered 0..N-1 to match their list position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import ValidationError
from .models import ComponentRecord, SiteDescriptor
from .registry import new_component


@dataclass
class SiteState:
    """The site being edited, passed explicitly to the generator and deployer."""

    site: SiteDescriptor
    components: list[ComponentRecord] = field(default_factory=list)
    export_format: str = "html"

    def _renumber(self) -> None:
        self.components = [
            component.model_copy(update={"order": index})
            for index, component in enumerate(self.components)
        ]

    def _index_of(self, component_id: str) -> int:
        for index, component in enumerate(self.components):
            if component.id == component_id:
                return index
        raise ValidationError(f"No component with id {component_id}")

    def add_component(self, component_type: str, position: int | None = None) -> ComponentRecord:
        existing = {component.id for component in self.components}
        component = new_component(component_type)
        while component.id in existing:
            component = new_component(component_type)

        if position is None:
            self.components.append(component)
        else:
            self.components.insert(position, component)
        self._renumber()
        return self.components[self._index_of(component.id)]

    def update_component(self, component_id: str, properties: dict[str, Any]) -> ComponentRecord:
        index = self._index_of(component_id)
        current = self.components[index]
        self.components[index] = current.model_copy(
            update={"properties": {**current.properties, **properties}}
        )
        return self.components[index]

    def remove_component(self, component_id: str) -> None:
        del self.components[self._index_of(component_id)]
        self._renumber()

    def reorder_components(self, start_index: int, end_index: int) -> None:
        if not 0 <= start_index < len(self.components):
            raise ValidationError(f"Index out of range: {start_index}")
        moved = self.components.pop(start_index)
        self.components.insert(end_index, moved)
        self._renumber()

    def sorted_components(self) -> list[ComponentRecord]:
        return sorted(self.components, key=lambda component: component.order)
