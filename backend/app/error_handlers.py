"""
Handlers d'exceptions globaux : toute erreur ressort sous forme d'enveloppe JSON.

- StudentApiError → son code HTTP et son enveloppe
- RequestValidationError (corps ou paramètres invalides) → 400
- Exception non gérée → 500, sans détail interne
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.errors import StudentApiError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Enregistre les trois niveaux de handlers sur l'application."""

    @app.exception_handler(StudentApiError)
    async def student_error_handler(request: Request, exc: StudentApiError) -> JSONResponse:
        log = logger.error if exc.http_status >= 500 else logger.info
        log("%s %s → %d : %s", request.method, request.url.path, exc.http_status, exc.message)
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Données invalides sur %s : %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "message": "invalid data",
                "error": format_validation_errors(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Intercepte toutes les exceptions non gérées pour garantir que la réponse 500
        passe bien par CORSMiddleware et garde le format d'enveloppe.
        """
        logger.error("Exception non gérée : %s", exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "server error"},
        )


def format_validation_errors(errors) -> str:
    """Aplati les erreurs Pydantic en `champ: message; champ: message`."""
    parts = []
    for e in errors:
        loc = ".".join(str(p) for p in e.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {e.get('msg')}" if loc else str(e.get("msg")))
    return "; ".join(parts)
