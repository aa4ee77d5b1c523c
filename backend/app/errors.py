"""
Hiérarchie d'erreurs de l'API élèves.

Chaque erreur porte son code HTTP et produit l'enveloppe d'échec
{success: false, message, error?} via to_response().
Les erreurs 4xx sont métier (données, doublons, introuvable) ; StoreError (500)
remonte une panne de la base.
"""

from typing import Optional


class StudentApiError(Exception):
    """Erreur de base convertie en réponse JSON par le handler global."""

    http_status = 500
    default_message = "server error"

    def __init__(self, message: Optional[str] = None, error: Optional[str] = None):
        self.message = message or self.default_message
        self.error = error
        super().__init__(self.message)

    def to_response(self) -> dict:
        body = {"success": False, "message": self.message}
        if self.error is not None:
            body["error"] = self.error
        return body


class StudentNotFoundError(StudentApiError):
    http_status = 404
    default_message = "student not found"


class DuplicateStudentError(StudentApiError):
    """Un élève avec le même couple (nom, prénom) existe déjà."""
    http_status = 400
    default_message = "duplicate name+firstName"


class DuplicateEmailError(StudentApiError):
    """Contrainte d'unicité de l'email violée en base."""
    http_status = 400
    default_message = "duplicate email"


class InvalidStudentDataError(StudentApiError):
    http_status = 400
    default_message = "invalid data"


class MissingParameterError(StudentApiError):
    http_status = 400
    default_message = "missing required parameter"


class StoreError(StudentApiError):
    http_status = 500
    default_message = "server error"
