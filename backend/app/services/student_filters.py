"""
Construction des critères SQL pour les listes d'élèves.

Chaque opération déclare explicitement sa portée sur le flag `active` (ActiveScope)
au lieu de reposer sur une convention implicite. Les filtres de la recherche avancée
et les champs de tri autorisés sont énumérés ci-dessous ; toute autre clé est ignorée
(filtres) ou refusée (tri).
"""

import operator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import InstrumentedAttribute

from app.errors import InvalidStudentDataError
from app.models.student import Student
from app.schemas.student import StudentFilters


class ActiveScope(str, Enum):
    """Portée d'une requête sur le flag de désactivation."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    ANY = "any"


def _icontains(column: InstrumentedAttribute, value: str):
    # autoescape : % et _ saisis par l'utilisateur sont pris littéralement
    return column.icontains(value, autoescape=True)


@dataclass(frozen=True)
class FilterRule:
    """Associe un champ de StudentFilters à une colonne et à un opérateur."""
    field: str
    column: InstrumentedAttribute
    apply: Callable[[Any, Any], Any]


FILTER_RULES = (
    FilterRule("name", Student.last_name, _icontains),
    FilterRule("program", Student.program, operator.eq),
    FilterRule("year_min", Student.year, operator.ge),
    FilterRule("year_max", Student.year, operator.le),
    FilterRule("average_min", Student.average, operator.ge),
)

SORT_FIELDS = {
    "name": Student.last_name,
    "firstName": Student.first_name,
    "email": Student.email,
    "program": Student.program,
    "year": Student.year,
    "average": Student.average,
    "createdAt": Student.created_at,
}


def active_condition(scope: ActiveScope):
    """Critère sur `active` pour la portée donnée, ou None pour ActiveScope.ANY."""
    if scope is ActiveScope.ACTIVE:
        return Student.active.is_(True)
    if scope is ActiveScope.INACTIVE:
        return Student.active.is_(False)
    return None


def build_conditions(filters: Optional[StudentFilters], scope: ActiveScope) -> List:
    """
    Traduit les filtres fournis en critères SQL, à combiner en ET.
    Un filtre absent n'ajoute aucun critère.
    """
    conditions = []
    active = active_condition(scope)
    if active is not None:
        conditions.append(active)

    if filters is None:
        return conditions

    for rule in FILTER_RULES:
        value = getattr(filters, rule.field)
        if value is not None:
            conditions.append(rule.apply(rule.column, value))
    return conditions


def search_condition(q: str):
    """Recherche insensible à la casse dans le nom OU le prénom."""
    return or_(_icontains(Student.last_name, q), _icontains(Student.first_name, q))


def build_order_by(sort_by: Optional[str], order: Optional[str]) -> List:
    """
    Critère de tri : ascendant par défaut, descendant uniquement si order == "desc".
    Sans sort_by, aucun tri n'est appliqué (ordre par défaut de la base).
    """
    if not sort_by:
        return []
    column = SORT_FIELDS.get(sort_by)
    if column is None:
        raise InvalidStudentDataError(
            "invalid sort field",
            f"sortBy must be one of: {', '.join(SORT_FIELDS)}",
        )
    return [column.desc() if order == "desc" else column.asc()]
