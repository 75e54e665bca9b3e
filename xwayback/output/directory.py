"""Registry of outputs discovered during bootstrap"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from xwayback.common.errors import ProtocolError
from xwayback.common.types import DisplayDescriptor

logger = logging.getLogger(__name__)


class OutputDirectory:
    """
    Insertion-ordered mapping from registry name to DisplayDescriptor.

    The first registered output is the default; `display_select` may move the
    selection to an output whose make (or "make model") matches a label.
    """

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._displays: dict[int, DisplayDescriptor] = {}
        self._selected: Optional[int] = None
        self._log: logging.Logger = log or logger

    def __len__(self) -> int:
        return len(self._displays)

    def __contains__(self, registry_name: object) -> bool:
        return registry_name in self._displays

    def __iter__(self) -> Iterator[DisplayDescriptor]:
        return iter(list(self._displays.values()))

    def display_get(self, registry_name: int) -> DisplayDescriptor:
        """
        Look up a descriptor by registry name

        Raises:
            KeyError: If the output is unknown
        """
        return self._displays[registry_name]

    def display_register(self, descriptor: DisplayDescriptor) -> None:
        """
        Insert a newly discovered output

        Args:
            descriptor: Descriptor keyed by its registry name
        """
        if descriptor.registry_name in self._displays:
            raise ValueError(f"Output {descriptor.registry_name} already registered")
        self._displays[descriptor.registry_name] = descriptor
        if self._selected is None:
            self._selected = descriptor.registry_name

    def display_update(self, descriptor: DisplayDescriptor) -> None:
        """Replace the stored descriptor for a known output"""
        if descriptor.registry_name not in self._displays:
            raise KeyError(descriptor.registry_name)
        self._displays[descriptor.registry_name] = descriptor

    def display_remove(self, registry_name: int) -> None:
        """
        Drop an output withdrawn from the registry

        If the removed output was selected, the selection falls back to the
        first remaining output.
        """
        self._displays.pop(registry_name, None)
        if self._selected == registry_name:
            self._selected = next(iter(self._displays), None)

    def display_select(self, label: Optional[str]) -> Optional[DisplayDescriptor]:
        """
        Apply an output override label

        Outputs are scanned in registration order; the first whose make or
        "make model" equals the label becomes the selection. An unmatched
        label leaves the default in place.

        Args:
            label: Override label, or None/empty for no override

        Returns:
            The selected descriptor, or None when nothing is registered
        """
        if label:
            for descriptor in self._displays.values():
                if descriptor.label_matches(label):
                    self._selected = descriptor.registry_name
                    self._log.debug(
                        "Output override '%s' matched %s %s",
                        label,
                        descriptor.make,
                        descriptor.model,
                    )
                    break
            else:
                self._log.debug("Output override '%s' matched nothing, using default", label)
        return self.selected

    @property
    def selected(self) -> Optional[DisplayDescriptor]:
        if self._selected is None:
            return None
        return self._displays[self._selected]

    def display_finalize(self) -> DisplayDescriptor:
        """
        Return the selected output

        Raises:
            ProtocolError: If no output was ever registered
        """
        selected = self.selected
        if selected is None:
            raise ProtocolError("Unable to get outputs")
        return selected
