"""
Modèle SQLAlchemy pour la table students.
L'email est unique en base ; le couple (nom, prénom) est vérifié par le service
avant insertion, sans contrainte en base.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Uuid, func

from app.database import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    last_name = Column(String(100), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    program = Column(String(100), nullable=True, index=True)
    year = Column(Integer, nullable=True)
    average = Column(Float, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
