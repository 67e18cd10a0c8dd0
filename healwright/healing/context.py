"""Per-attempt healing context."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Any

from healwright.dom.document import ElementIndex
from healwright.locator.parser import LocatorDescriptor, parse_locator

if TYPE_CHECKING:
    from healwright.models.domain import ElementSnapshot


@dataclass(frozen=True)
class HealingContext:
    """Everything known about one failed resolution.

    Created once per failure and read-only while strategies run. The locator
    is parsed on creation; ``elements`` is filled by the engine with the
    document snapshot every strategy shares.
    """

    page: Any
    original_locator: str
    test_name: str | None = None
    line_number: int | None = None
    screenshot: str | None = None
    previous_element: ElementSnapshot | None = None
    elements: tuple[ElementSnapshot, ...] = ()
    descriptor: LocatorDescriptor = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "descriptor", parse_locator(self.original_locator))

    @cached_property
    def index(self) -> ElementIndex:
        return ElementIndex(self.elements)
