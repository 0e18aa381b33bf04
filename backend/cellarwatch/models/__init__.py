from cellarwatch.models.batch import FermentationBatch, FermentationReading
from cellarwatch.models.tank import Tank

__all__ = [
    "FermentationBatch",
    "FermentationReading",
    "Tank",
]
