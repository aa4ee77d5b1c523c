"""
Service métier pour les élèves.
Création, lecture, mise à jour, désactivation (soft delete), recherche, filtres et tri.

Les erreurs de la base sont interceptées ici et converties en erreurs typées
(app.errors) ; le router n'a plus qu'à construire l'enveloppe de succès.

Note : la vérification de doublon (nom, prénom) précède l'insertion sans transaction
commune. Deux créations simultanées du même couple peuvent donc toutes deux réussir.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import (
    DuplicateEmailError,
    DuplicateStudentError,
    InvalidStudentDataError,
    MissingParameterError,
    StoreError,
    StudentNotFoundError,
)
from app.models.student import Student
from app.schemas.student import StudentCreate, StudentFilters, StudentResponse, StudentUpdate
from app.services.student_filters import (
    ActiveScope,
    build_conditions,
    build_order_by,
    search_condition,
)

logger = logging.getLogger(__name__)

# SQLSTATE PostgreSQL : violation de contrainte d'unicité
UNIQUE_VIOLATION = "23505"


@contextmanager
def _store_call(db: Session, operation: str) -> Iterator[None]:
    """Convertit toute erreur SQLAlchemy en StoreError (500) après rollback."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Erreur base de données pendant '%s' : %s", operation, exc)
        raise StoreError(error=str(exc)) from exc


def _is_unique_violation(exc: IntegrityError) -> bool:
    """Distingue une violation d'unicité (email) des autres erreurs d'intégrité."""
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    # SQLite ne fournit pas de SQLSTATE
    return "UNIQUE constraint failed" in str(orig)


def _parse_id(student_id: str) -> Optional[uuid.UUID]:
    """Un identifiant mal formé est traité comme introuvable, pas comme une erreur."""
    try:
        return uuid.UUID(str(student_id))
    except ValueError:
        logger.info("Identifiant d'élève mal formé : %r", student_id)
        return None


def _get_or_404(db: Session, student_id: str) -> Student:
    sid = _parse_id(student_id)
    student = db.get(Student, sid) if sid is not None else None
    if student is None:
        raise StudentNotFoundError()
    return student


def _commit_or_raise(db: Session, invalid_message: Optional[str] = None) -> None:
    """Commit ; un doublon d'email ou une autre erreur d'intégrité devient une erreur 400."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_unique_violation(exc):
            raise DuplicateEmailError() from exc
        raise InvalidStudentDataError(invalid_message, error=str(exc.orig)) from exc


def _fetch(db: Session, conditions: List, order_by: Optional[List] = None) -> List[StudentResponse]:
    stmt = select(Student).where(*conditions)
    if order_by:
        stmt = stmt.order_by(*order_by)
    students = db.execute(stmt).scalars().all()
    return [StudentResponse.model_validate(s) for s in students]


def create_student(db: Session, data: StudentCreate) -> StudentResponse:
    """
    Crée un élève.
    Lève DuplicateStudentError si le couple (nom, prénom) existe déjà (actif ou non),
    DuplicateEmailError si l'email est déjà utilisé.
    """
    logger.info("Création d'un élève : %s %s <%s>", data.first_name, data.last_name, data.email)

    with _store_call(db, "create"):
        existing = db.execute(
            select(Student.id)
            .where(Student.last_name == data.last_name, Student.first_name == data.first_name)
            .limit(1)
        ).scalar()
        if existing is not None:
            raise DuplicateStudentError()

        student = Student(**data.model_dump())
        db.add(student)
        _commit_or_raise(db)
        db.refresh(student)

    logger.info("Élève créé : %s", student.id)
    return StudentResponse.model_validate(student)


def get_students(db: Session) -> List[StudentResponse]:
    """Retourne tous les élèves actifs, dans l'ordre par défaut de la base."""
    with _store_call(db, "list"):
        return _fetch(db, build_conditions(None, ActiveScope.ACTIVE))


def get_inactive_students(db: Session) -> List[StudentResponse]:
    """Retourne les élèves désactivés."""
    with _store_call(db, "list inactive"):
        return _fetch(db, build_conditions(None, ActiveScope.INACTIVE))


def get_student(db: Session, student_id: str) -> StudentResponse:
    """Retourne un élève par son ID, qu'il soit actif ou non."""
    logger.info("Recherche de l'élève %s", student_id)
    with _store_call(db, "get"):
        return StudentResponse.model_validate(_get_or_404(db, student_id))


def update_student(db: Session, student_id: str, data: StudentUpdate) -> StudentResponse:
    """
    Met à jour les champs fournis d'un élève. Les champs absents ne sont pas modifiés.
    Retourne l'état après mise à jour.
    """
    update_data = data.model_dump(exclude_unset=True)
    logger.info("Mise à jour de l'élève %s : %s", student_id, update_data)

    with _store_call(db, "update"):
        student = _get_or_404(db, student_id)
        for field, value in update_data.items():
            setattr(student, field, value)
        _commit_or_raise(db, "update failed")
        db.refresh(student)

    return StudentResponse.model_validate(student)


def deactivate_student(db: Session, student_id: str) -> StudentResponse:
    """Soft delete : force active à False. Idempotent sur un élève déjà désactivé."""
    logger.info("Désactivation de l'élève %s", student_id)

    with _store_call(db, "deactivate"):
        student = _get_or_404(db, student_id)
        student.active = False
        db.commit()
        db.refresh(student)

    return StudentResponse.model_validate(student)


def get_students_by_program(db: Session, program: str) -> List[StudentResponse]:
    """Élèves d'une filière, actifs ET désactivés (pas de filtre sur active)."""
    logger.info("Recherche par filière : %s", program)
    with _store_call(db, "by program"):
        # Égalité stricte, même sur une valeur vide
        conditions = build_conditions(None, ActiveScope.ANY)
        conditions.append(Student.program == program)
        return _fetch(db, conditions)


def search_students(db: Session, q: Optional[str]) -> List[StudentResponse]:
    """Recherche plein texte (sous-chaîne, insensible à la casse) sur le nom ou le prénom des élèves actifs."""
    if not q:
        raise MissingParameterError("search parameter q is required")

    logger.info("Recherche d'élèves : %r", q)
    with _store_call(db, "search"):
        conditions = build_conditions(None, ActiveScope.ACTIVE)
        conditions.append(search_condition(q))
        return _fetch(db, conditions)


def advanced_search(
    db: Session,
    filters: StudentFilters,
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
) -> List[StudentResponse]:
    """Élèves actifs correspondant à tous les filtres fournis (ET logique)."""
    logger.info("Recherche avancée : %s", filters.provided())
    order_by = build_order_by(sort_by, order)
    with _store_call(db, "advanced search"):
        return _fetch(db, build_conditions(filters, ActiveScope.ACTIVE), order_by)


def get_sorted_students(db: Session, sort_by: Optional[str], order: Optional[str]) -> List[StudentResponse]:
    """Élèves actifs triés par sort_by ; ascendant sauf si order == "desc"."""
    order_by = build_order_by(sort_by, order)
    with _store_call(db, "sorted list"):
        return _fetch(db, build_conditions(None, ActiveScope.ACTIVE), order_by)
