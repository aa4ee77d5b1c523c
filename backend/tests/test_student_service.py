"""
Tests unitaires pour le service élèves.
La session SQLAlchemy est mockée ; on vérifie les appels à la base et la
conversion des erreurs en erreurs typées.
"""

import uuid
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError
from sqlalchemy.dialects import sqlite
from sqlalchemy.exc import IntegrityError, OperationalError

from app.errors import (
    DuplicateEmailError,
    DuplicateStudentError,
    InvalidStudentDataError,
    MissingParameterError,
    StoreError,
    StudentNotFoundError,
)
from app.models.student import Student
from app.schemas.student import StudentCreate, StudentFilters, StudentUpdate
from app.services.student_service import (
    advanced_search,
    create_student,
    deactivate_student,
    get_inactive_students,
    get_student,
    get_students,
    get_students_by_program,
    get_sorted_students,
    search_students,
    update_student,
)


# --- Helpers ---

class FakeDriverError(Exception):
    """Imite une erreur psycopg2 portant un SQLSTATE."""

    def __init__(self, message: str, pgcode=None):
        super().__init__(message)
        self.pgcode = pgcode


def make_student(**kwargs) -> Student:
    return Student(
        id=kwargs.get("id", uuid.uuid4()),
        last_name=kwargs.get("last_name", "Dupont"),
        first_name=kwargs.get("first_name", "Jean"),
        email=kwargs.get("email", "jean@x.com"),
        program=kwargs.get("program", "CS"),
        year=kwargs.get("year", 2021),
        average=kwargs.get("average", 14.5),
        active=kwargs.get("active", True),
        created_at=datetime.now(),
        updated_at=datetime.now(),
    )


def make_db_mock(student=None, existing_id=None, students=None):
    db = MagicMock()
    db.get.return_value = student
    db.execute.return_value.scalar.return_value = existing_id
    db.execute.return_value.scalars.return_value.all.return_value = students or []
    return db


def integrity_error(message: str, pgcode=None) -> IntegrityError:
    return IntegrityError("INSERT INTO students ...", {}, FakeDriverError(message, pgcode))


CREATE_DATA = StudentCreate(
    name="Dupont",
    firstName="Jean",
    email="jean@x.com",
    program="CS",
    year=2021,
    average=14.5,
)


# --- Validation des schémas ---

def test_student_create_strip_des_noms():
    data = StudentCreate(name="  Dupont ", firstName=" Jean", email="jean@x.com")
    assert data.last_name == "Dupont"
    assert data.first_name == "Jean"
    assert data.active is True


def test_student_create_email_obligatoire():
    with pytest.raises(ValidationError):
        StudentCreate(name="Dupont", firstName="Jean")


def test_student_update_null_refuse_pour_champ_obligatoire():
    with pytest.raises(ValidationError):
        StudentUpdate(firstName=None)


def test_student_update_null_accepte_pour_champ_optionnel():
    data = StudentUpdate(program=None)
    assert data.model_dump(exclude_unset=True) == {"program": None}


def test_student_filters_valeurs_vides_ignorees():
    filters = StudentFilters.model_validate({"name": " ", "yearMin": "", "averageMin": "12.5"})
    assert filters.name is None
    assert filters.year_min is None
    assert filters.provided() == {"averageMin": 12.5}


# --- create_student ---

def test_create_student_succes():
    db = make_db_mock(existing_id=None)
    sid = uuid.uuid4()

    def fake_refresh(obj):
        obj.id = sid
        obj.created_at = datetime.now()

    db.refresh.side_effect = fake_refresh

    result = create_student(db, CREATE_DATA)

    db.add.assert_called_once()
    added = db.add.call_args.args[0]
    assert isinstance(added, Student)
    assert added.last_name == "Dupont"
    assert added.email == "jean@x.com"
    db.commit.assert_called_once()
    assert result.id == sid
    assert result.active is True
    assert result.average == 14.5


def test_create_student_doublon_nom_prenom_sans_insertion():
    db = make_db_mock(existing_id=uuid.uuid4())

    with pytest.raises(DuplicateStudentError) as exc_info:
        create_student(db, CREATE_DATA)

    assert exc_info.value.http_status == 400
    db.add.assert_not_called()
    db.commit.assert_not_called()


def test_create_student_doublon_email_postgres():
    db = make_db_mock(existing_id=None)
    db.commit.side_effect = integrity_error("duplicate key value", pgcode="23505")

    with pytest.raises(DuplicateEmailError):
        create_student(db, CREATE_DATA)
    db.rollback.assert_called_once()


def test_create_student_doublon_email_sqlite():
    db = make_db_mock(existing_id=None)
    db.commit.side_effect = integrity_error("UNIQUE constraint failed: students.email")

    with pytest.raises(DuplicateEmailError):
        create_student(db, CREATE_DATA)


def test_create_student_autre_erreur_integrite():
    db = make_db_mock(existing_id=None)
    db.commit.side_effect = integrity_error('null value in column "email"', pgcode="23502")

    with pytest.raises(InvalidStudentDataError) as exc_info:
        create_student(db, CREATE_DATA)

    assert exc_info.value.message == "invalid data"
    assert "null value" in exc_info.value.error


def test_create_student_base_indisponible():
    db = make_db_mock()
    db.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

    with pytest.raises(StoreError) as exc_info:
        create_student(db, CREATE_DATA)

    assert exc_info.value.http_status == 500
    assert "connection refused" in exc_info.value.error
    db.rollback.assert_called_once()


# --- get_student ---

def test_get_student_trouve():
    student = make_student()
    db = make_db_mock(student=student)

    result = get_student(db, str(student.id))

    assert result.id == student.id
    assert result.last_name == "Dupont"
    db.get.assert_called_once_with(Student, student.id)


def test_get_student_introuvable():
    db = make_db_mock(student=None)
    with pytest.raises(StudentNotFoundError):
        get_student(db, str(uuid.uuid4()))


def test_get_student_id_mal_forme_est_introuvable():
    db = make_db_mock()
    with pytest.raises(StudentNotFoundError):
        get_student(db, "pas-un-uuid")
    db.get.assert_not_called()


def test_get_student_inactif_retourne():
    student = make_student(active=False)
    db = make_db_mock(student=student)
    assert get_student(db, str(student.id)).active is False


# --- update_student ---

def test_update_student_champs_fournis_seulement():
    student = make_student(average=14.5, program="CS")
    db = make_db_mock(student=student)

    result = update_student(db, str(student.id), StudentUpdate(average=17))

    assert result.average == 17
    assert result.program == "CS"
    assert result.last_name == "Dupont"
    db.commit.assert_called_once()
    db.refresh.assert_called_once_with(student)


def test_update_student_reactivation():
    student = make_student(active=False)
    db = make_db_mock(student=student)

    result = update_student(db, str(student.id), StudentUpdate(active=True))

    assert result.active is True


def test_update_student_introuvable():
    db = make_db_mock(student=None)
    with pytest.raises(StudentNotFoundError):
        update_student(db, str(uuid.uuid4()), StudentUpdate(program="Math"))
    db.commit.assert_not_called()


def test_update_student_email_deja_pris():
    student = make_student()
    db = make_db_mock(student=student)
    db.commit.side_effect = integrity_error("duplicate key value", pgcode="23505")

    with pytest.raises(DuplicateEmailError):
        update_student(db, str(student.id), StudentUpdate(email="alice@x.com"))


def test_update_student_erreur_integrite_message_mise_a_jour():
    student = make_student()
    db = make_db_mock(student=student)
    db.commit.side_effect = integrity_error("check constraint", pgcode="23514")

    with pytest.raises(InvalidStudentDataError) as exc_info:
        update_student(db, str(student.id), StudentUpdate(year=1))

    assert exc_info.value.message == "update failed"


# --- deactivate_student ---

def test_deactivate_student():
    student = make_student(active=True)
    db = make_db_mock(student=student)

    result = deactivate_student(db, str(student.id))

    assert result.active is False
    assert student.active is False
    db.commit.assert_called_once()


def test_deactivate_student_idempotent():
    student = make_student(active=False)
    db = make_db_mock(student=student)

    first = deactivate_student(db, str(student.id))
    second = deactivate_student(db, str(student.id))

    assert first.active is False
    assert second.active is False


def test_deactivate_student_introuvable():
    db = make_db_mock(student=None)
    with pytest.raises(StudentNotFoundError):
        deactivate_student(db, str(uuid.uuid4()))


# --- listes ---

def test_get_students_retourne_la_liste():
    db = make_db_mock(students=[make_student(), make_student(last_name="Martin")])
    result = get_students(db)
    assert [s.last_name for s in result] == ["Dupont", "Martin"]


def test_get_inactive_students():
    db = make_db_mock(students=[make_student(active=False)])
    assert get_inactive_students(db)[0].active is False


def test_get_students_by_program():
    db = make_db_mock(students=[make_student(), make_student(active=False)])
    assert len(get_students_by_program(db, "CS")) == 2


@pytest.mark.parametrize("q", [None, ""])
def test_search_students_sans_q(q):
    db = make_db_mock()
    with pytest.raises(MissingParameterError) as exc_info:
        search_students(db, q)
    assert exc_info.value.message == "search parameter q is required"
    db.execute.assert_not_called()


def test_search_students():
    db = make_db_mock(students=[make_student(last_name="Martin")])
    assert len(search_students(db, "mar")) == 1
    db.execute.assert_called_once()


def test_advanced_search_tri_inconnu_avant_appel_base():
    db = make_db_mock()
    with pytest.raises(InvalidStudentDataError):
        advanced_search(db, StudentFilters(program="CS"), sort_by="password")
    db.execute.assert_not_called()


def test_get_sorted_students_erreur_base():
    db = make_db_mock()
    db.execute.side_effect = OperationalError("SELECT", {}, Exception("timeout"))
    with pytest.raises(StoreError):
        get_sorted_students(db, "average", "desc")


def test_get_students_by_program_critere_egalite_meme_vide():
    db = make_db_mock(students=[])

    get_students_by_program(db, " ")

    compiled = db.execute.call_args.args[0].compile(dialect=sqlite.dialect())
    assert "students.program = ?" in str(compiled)
    assert "students.active" not in str(compiled).split("WHERE")[1]
    assert list(compiled.params.values()) == [" "]
