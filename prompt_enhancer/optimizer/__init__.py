"""Model-backed prompt enhancement with heuristic fallback."""

from .capability import ModelCapability, StrandsModelCapability
from .optimizer import Optimizer, OptimizerSettings, estimate_complexity, improve_instruction
from .schema import EnhancementFields, EnhancementOk, SchemaViolation, check_enhancement

__all__ = [
    "EnhancementFields",
    "EnhancementOk",
    "ModelCapability",
    "Optimizer",
    "OptimizerSettings",
    "SchemaViolation",
    "StrandsModelCapability",
    "check_enhancement",
    "estimate_complexity",
    "improve_instruction",
]
