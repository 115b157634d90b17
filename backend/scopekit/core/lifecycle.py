"""Lifecycle Enum: closed state set with total presentation mappings.

Invariants:
    - Every state maps to exactly one non-empty label, badge color and icon
    - A missing, empty or foreign mapping raises MappingError while the table is built,
      so an incomplete table stops the process at import time
    - editable_states() is a fixed frozenset declared once, always a subset of the states
    - Mapping tables are read-only after construction (MappingProxyType)

Design Decisions:
    - Lifecycle object wraps a str Enum instead of methods on the Enum itself:
      enum members stay plain values that serialize to the DB column as-is
    - coerce() accepts raw strings: String columns load back as str, not as the Enum
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Generic, Iterable, Mapping, TypeVar

from scopekit.core.errors import MappingError

S = TypeVar("S", bound=Enum)

PRESENTATION_MAPPINGS = ("label", "badge_color", "icon")


@dataclass(frozen=True)
class StatePresentation:
    """Everything the presentation layer needs to render one state."""
    label: str
    badge_color: str
    icon: str


def _freeze_mapping(
    states: type[S], table: Mapping[S, str], mapping: str,
) -> Mapping[S, str]:
    members = list(states)
    foreign = [key for key in table if key not in members]
    if foreign:
        raise MappingError(
            f"{states.__name__} {mapping} mapping has keys that are not states: "
            f"{sorted(str(k) for k in foreign)}",
            state=str(foreign[0]), mapping=mapping,
        )

    frozen: dict[S, str] = {}
    for state in members:
        if state not in table:
            raise MappingError(
                f"{states.__name__}.{state.name} has no {mapping} mapping",
                state=str(state.value), mapping=mapping,
            )
        value = table[state]
        if not isinstance(value, str) or not value.strip():
            raise MappingError(
                f"{states.__name__}.{state.name} has an empty {mapping} mapping",
                state=str(state.value), mapping=mapping,
            )
        frozen[state] = value
    return MappingProxyType(frozen)


class Lifecycle(Generic[S]):
    """Validated presentation table and editable subset for one state Enum."""

    def __init__(
        self,
        states: type[S],
        *,
        labels: Mapping[S, str],
        badge_colors: Mapping[S, str],
        icons: Mapping[S, str],
        editable: Iterable[S],
    ):
        self.states = states
        self._labels = _freeze_mapping(states, labels, "label")
        self._badge_colors = _freeze_mapping(states, badge_colors, "badge_color")
        self._icons = _freeze_mapping(states, icons, "icon")

        members = list(states)
        editable_set = frozenset(editable)
        for state in editable_set:
            if state not in members:
                raise MappingError(
                    f"{states.__name__} editable set contains unknown state {state!r}",
                    state=str(state), mapping="editable",
                )
        self._editable = frozenset(states(s) for s in editable_set)

    def __repr__(self) -> str:
        return f"Lifecycle({self.states.__name__})"

    def coerce(self, value: S | str) -> S:
        """Return the state for a member or its raw value."""
        if isinstance(value, self.states):
            return value
        try:
            return self.states(value)
        except ValueError:
            raise MappingError(
                f"{value!r} is not a {self.states.__name__} value",
                state=str(value), mapping="state",
            ) from None

    def label(self, state: S | str) -> str:
        return self._labels[self.coerce(state)]

    def badge_color(self, state: S | str) -> str:
        return self._badge_colors[self.coerce(state)]

    def icon(self, state: S | str) -> str:
        return self._icons[self.coerce(state)]

    def presentation(self, state: S | str) -> StatePresentation:
        s = self.coerce(state)
        return StatePresentation(
            label=self._labels[s],
            badge_color=self._badge_colors[s],
            icon=self._icons[s],
        )

    def editable_states(self) -> frozenset[S]:
        return self._editable

    def is_editable(self, state: S | str) -> bool:
        return self.coerce(state) in self._editable

    def options(self) -> list[dict]:
        """Select-box style options in declaration order."""
        return [
            {
                "value": state.value,
                "label": self._labels[state],
                "badge_color": self._badge_colors[state],
                "icon": self._icons[state],
            }
            for state in self.states
        ]
