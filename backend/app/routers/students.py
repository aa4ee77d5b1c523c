"""
Router pour les élèves.
Création (POST /students), lecture, mise à jour, désactivation (DELETE = soft delete),
recherche par filière, recherche plein texte, liste des désactivés,
recherche avancée et tri (GET /students avec paramètres).

Toutes les réponses suivent l'enveloppe {success, message?, count?, data, ...}.
Les erreurs sont levées par le service et mises en forme par app.error_handlers.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.error_handlers import format_validation_errors
from app.errors import InvalidStudentDataError
from app.schemas.student import (
    StudentCreate,
    StudentEnvelope,
    StudentFilters,
    StudentListEnvelope,
    StudentUpdate,
)
from app.services import student_service

router = APIRouter(prefix=f"{settings.API_PREFIX}/students", tags=["Élèves"])


@router.post(
    "",
    response_model=StudentEnvelope,
    response_model_exclude_none=True,
    status_code=201,
    summary="Créer un élève",
)
def create_student(data: StudentCreate, db: Session = Depends(get_db)):
    """Crée un élève. Refusé si le couple nom + prénom ou l'email existe déjà."""
    student = student_service.create_student(db, data)
    return StudentEnvelope(message="student created successfully", data=student)


@router.get(
    "",
    response_model=StudentListEnvelope,
    response_model_exclude_none=True,
    summary="Lister, filtrer ou trier les élèves actifs",
)
def list_students(
    request: Request,
    name: Optional[str] = Query(None),
    program: Optional[str] = Query(None),
    year_min: Optional[str] = Query(None, alias="yearMin"),
    year_max: Optional[str] = Query(None, alias="yearMax"),
    average_min: Optional[str] = Query(None, alias="averageMin"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    order: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Sans paramètre : tous les élèves actifs.
    Avec au moins un filtre (name, program, yearMin, yearMax, averageMin) : recherche avancée,
    `filters` renvoie tels quels tous les paramètres de la requête.
    Avec sortBy / order seulement : liste triée (ascendant sauf order=desc).
    """
    try:
        filters = StudentFilters.model_validate({
            "name": name,
            "program": program,
            "yearMin": year_min,
            "yearMax": year_max,
            "averageMin": average_min,
        })
    except ValidationError as e:
        raise InvalidStudentDataError(error=format_validation_errors(e.errors())) from e

    if not filters.is_empty():
        students = student_service.advanced_search(db, filters, sort_by, order)
        return StudentListEnvelope.of(students, filters=dict(request.query_params), sort_by=sort_by, order=order)

    if sort_by is not None or order is not None:
        students = student_service.get_sorted_students(db, sort_by, order)
        return StudentListEnvelope.of(students, sort_by=sort_by, order=order)

    return StudentListEnvelope.of(student_service.get_students(db))


@router.get(
    "/search",
    response_model=StudentListEnvelope,
    response_model_exclude_none=True,
    summary="Rechercher par nom ou prénom",
)
def search_students(q: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Recherche insensible à la casse dans le nom OU le prénom des élèves actifs."""
    students = student_service.search_students(db, q)
    return StudentListEnvelope.of(students, query=q)


@router.get(
    "/inactive",
    response_model=StudentListEnvelope,
    response_model_exclude_none=True,
    summary="Lister les élèves désactivés",
)
def list_inactive_students(db: Session = Depends(get_db)):
    return StudentListEnvelope.of(student_service.get_inactive_students(db))


@router.get(
    "/program/{program}",
    response_model=StudentListEnvelope,
    response_model_exclude_none=True,
    summary="Élèves d'une filière",
)
def list_students_by_program(program: str, db: Session = Depends(get_db)):
    """Retourne les élèves de la filière, actifs comme désactivés."""
    students = student_service.get_students_by_program(db, program)
    return StudentListEnvelope.of(students, program=program)


@router.get(
    "/{student_id}",
    response_model=StudentEnvelope,
    response_model_exclude_none=True,
    summary="Détail d'un élève",
)
def get_student(student_id: str, db: Session = Depends(get_db)):
    """Retourne un élève par son ID. Un ID inconnu ou mal formé renvoie 404."""
    return StudentEnvelope(data=student_service.get_student(db, student_id))


@router.put(
    "/{student_id}",
    response_model=StudentEnvelope,
    response_model_exclude_none=True,
    summary="Modifier un élève",
)
def update_student(student_id: str, data: StudentUpdate, db: Session = Depends(get_db)):
    """Met à jour les champs fournis et retourne l'élève après modification."""
    student = student_service.update_student(db, student_id, data)
    return StudentEnvelope(message="student updated successfully", data=student)


@router.delete(
    "/{student_id}",
    response_model=StudentEnvelope,
    response_model_exclude_none=True,
    summary="Désactiver un élève",
)
def delete_student(student_id: str, db: Session = Depends(get_db)):
    """Soft delete : l'élève est désactivé (active=false), jamais supprimé."""
    student = student_service.deactivate_student(db, student_id)
    return StudentEnvelope(message="deactivated successfully", data=student)
