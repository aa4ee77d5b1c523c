"""
Schémas Pydantic pour les élèves.
Les champs sont exposés en camelCase (firstName, createdAt...) ; le nom de famille
est exposé sous la clé `name`.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


def _strip_not_empty(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError("field cannot be empty")
    return v.strip() if v else v


class StudentCreate(BaseModel):
    """Schéma de création d'un élève (POST /students)."""
    last_name: str = Field(alias="name")
    first_name: str
    email: EmailStr
    program: Optional[str] = None
    year: Optional[int] = None
    average: Optional[float] = None
    active: bool = True

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @field_validator("last_name", "first_name", "program")
    @classmethod
    def not_empty(cls, v: Optional[str]) -> Optional[str]:
        return _strip_not_empty(v)


class StudentUpdate(BaseModel):
    """
    Schéma de mise à jour partielle (PUT /students/{id}).
    Seuls les champs envoyés sont appliqués ; un champ obligatoire envoyé à null est refusé.
    """
    last_name: Optional[str] = Field(default=None, alias="name")
    first_name: Optional[str] = None
    email: Optional[EmailStr] = None
    program: Optional[str] = None
    year: Optional[int] = None
    average: Optional[float] = None
    active: Optional[bool] = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @field_validator("last_name", "first_name", "email", "active")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("field cannot be null")
        return v

    @field_validator("last_name", "first_name", "program")
    @classmethod
    def not_empty(cls, v: Optional[str]) -> Optional[str]:
        return _strip_not_empty(v)


class StudentResponse(BaseModel):
    """Schéma de réponse pour un élève."""
    id: uuid.UUID
    last_name: str = Field(alias="name")
    first_name: str
    email: str
    program: Optional[str] = None
    year: Optional[int] = None
    average: Optional[float] = None
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "alias_generator": to_camel, "populate_by_name": True}


class StudentFilters(BaseModel):
    """
    Filtres reconnus par la recherche avancée (GET /students?name=&program=...).

    - name : sous-chaîne insensible à la casse sur le nom de famille
    - program : égalité stricte
    - yearMin / yearMax : bornes incluses sur l'année
    - averageMin : borne basse incluse sur la moyenne

    Une valeur vide équivaut à un filtre absent.
    """
    name: Optional[str] = None
    program: Optional[str] = None
    year_min: Optional[int] = None
    year_max: Optional[int] = None
    average_min: Optional[float] = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @field_validator("*", mode="before")
    @classmethod
    def blank_as_missing(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def is_empty(self) -> bool:
        return not self.provided()

    def provided(self) -> Dict[str, Any]:
        """Filtres effectivement fournis, clés en camelCase."""
        return self.model_dump(by_alias=True, exclude_none=True)


class StudentEnvelope(BaseModel):
    """Enveloppe de réponse pour un élève unique."""
    success: bool = True
    message: Optional[str] = None
    data: StudentResponse


class StudentListEnvelope(BaseModel):
    """Enveloppe de réponse pour une liste d'élèves, avec les paramètres de requête renvoyés."""
    success: bool = True
    count: int
    query: Optional[str] = None
    program: Optional[str] = None
    filters: Optional[Dict[str, Any]] = None
    sort_by: Optional[str] = None
    order: Optional[str] = None
    data: List[StudentResponse]

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @classmethod
    def of(cls, students: List[StudentResponse], **echo: Any) -> "StudentListEnvelope":
        return cls(count=len(students), data=students, **echo)
