"""Ordered collection of units of work."""

from __future__ import annotations

from typing import Iterator

from cerebra_chain.models.step_params import OutputKind
from cerebra_chain.unit_of_work import UnitOfWork


class Pipeline:
    def __init__(self) -> None:
        self._units: list[UnitOfWork] = []

    def add(self, unit: UnitOfWork) -> UnitOfWork:
        self._units.append(unit)
        return unit

    def clear(self) -> None:
        self._units.clear()

    @property
    def count(self) -> int:
        return len(self._units)

    @property
    def output_kind(self) -> OutputKind:
        if not self._units:
            return OutputKind.NONE
        return self._units[0].params.output_kind

    @property
    def last_output(self) -> str:
        if not self._units:
            return ""
        return self._units[-1].output

    def aggregate(self, reset_base: bool = True) -> str:
        """
        Join the captured outputs with the separator of the pipeline's output
        kind. With reset_base=False the result starts with a separator so it
        can be appended to an existing accumulator.
        """
        separator = self.output_kind.separator
        result = ""
        for index, unit in enumerate(self._units):
            if index > 0 or not reset_base:
                result += separator
            result += unit.output
        return result

    def __len__(self) -> int:
        return len(self._units)

    def __getitem__(self, index: int) -> UnitOfWork:
        return self._units[index]

    def __iter__(self) -> Iterator[UnitOfWork]:
        return iter(self._units)

    def __bool__(self) -> bool:
        return bool(self._units)
