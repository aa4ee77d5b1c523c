# Importe les modèles pour enregistrer leurs tables dans Base.metadata
# avant Base.metadata.create_all().

from app.models.student import Student  # noqa: F401
