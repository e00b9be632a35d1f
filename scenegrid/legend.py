from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Sequence

from .layers import Layer, VisualKey


LOGGER = logging.getLogger(__name__)


class LegendState(Enum):
    EMPTY = "empty"
    HAS_ENTRIES = "has_entries"


@dataclass(frozen=True)
class LegendEntry:
    label: str
    key: VisualKey


class LegendAggregator:
    """Visible legend entries for one frame, rebuilt from the frame's layers.

    Entries keep the position of the first layer with a label while showing the
    visual key of the last one. Recomputation happens on every layer change
    whether or not the legend is shown.
    """

    def __init__(self, *, visible: bool = True) -> None:
        self.visible = visible
        self._entries: tuple[LegendEntry, ...] = ()
        self._state = LegendState.EMPTY
        self._revision = 0

    @property
    def state(self) -> LegendState:
        return self._state

    @property
    def entries(self) -> tuple[LegendEntry, ...]:
        return self._entries

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(entry.label for entry in self._entries)

    def recompute(self, layers: Sequence[Layer]) -> tuple[LegendEntry, ...]:
        keys: dict[str, VisualKey] = {}
        for layer in layers:
            if layer.label is None or not layer.label.strip():
                continue
            # dict keeps first-insertion order; reassignment only swaps the key
            keys[layer.label] = layer.key
        self._entries = tuple(LegendEntry(label=label, key=key) for label, key in keys.items())
        self._state = LegendState.HAS_ENTRIES if self._entries else LegendState.EMPTY
        self._revision += 1
        LOGGER.debug("legend recomputed: revision=%d entries=%d", self._revision, len(self._entries))
        return self._entries
