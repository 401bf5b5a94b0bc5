"""Record transformers."""

from .base import RecordTransformer, TransformResult
from .gisaid import GisaidTransformer

__all__ = ["RecordTransformer", "TransformResult", "GisaidTransformer"]
