"""
Predicados de filtro canonicos.

Los llamadores construyen un arbol con `eq`, `contains`, `between`, `in_`
y los agrupan con `and_` / `or_`. Cada generacion de protocolo traduce el
arbol a su propio formato; aqui no hay nada especifico de version.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Union


class Operator(str, Enum):
    EQ = "eq"
    CONTAINS = "contains"
    BETWEEN = "between"
    IN = "in"


class Logic(str, Enum):
    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class Condition:
    """Condicion sobre un campo. Para BETWEEN, value es (min, max); para IN, una tupla."""

    field_id: str
    operator: Operator
    value: Any


@dataclass(frozen=True)
class FilterGroup:
    logic: Logic
    children: Tuple["Filter", ...]


Filter = Union[Condition, FilterGroup]


def eq(field_id: str, value: Any) -> Condition:
    return Condition(field_id, Operator.EQ, value)


def contains(field_id: str, value: str) -> Condition:
    return Condition(field_id, Operator.CONTAINS, value)


def between(field_id: str, minimum: Any, maximum: Any) -> Condition:
    return Condition(field_id, Operator.BETWEEN, (minimum, maximum))


def in_(field_id: str, *values: Any) -> Condition:
    return Condition(field_id, Operator.IN, tuple(values))


def and_(*children: Filter) -> FilterGroup:
    return FilterGroup(Logic.AND, tuple(children))


def or_(*children: Filter) -> FilterGroup:
    return FilterGroup(Logic.OR, tuple(children))


def as_group(predicate: Filter | None) -> FilterGroup:
    """Normaliza a grupo raiz: None -> grupo AND vacio, condicion -> AND(condicion)."""
    if predicate is None:
        return FilterGroup(Logic.AND, ())
    if isinstance(predicate, FilterGroup):
        return predicate
    return FilterGroup(Logic.AND, (predicate,))
