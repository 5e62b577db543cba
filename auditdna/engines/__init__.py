# Engines: the capability contract, concrete engines and the registry.

from auditdna.engines.base import BaseEngine, Engine
from auditdna.engines.basic import BASIC_ENGINE_DESCRIPTORS, BasicEngine
from auditdna.engines.registry import EngineRegistry, build_default_registry
from auditdna.engines.stored import StoredEngine
from auditdna.engines.usda_pricing import USDA_DESCRIPTOR, USDAPricingEngine

__all__ = [
    "BaseEngine",
    "Engine",
    "BASIC_ENGINE_DESCRIPTORS",
    "BasicEngine",
    "EngineRegistry",
    "build_default_registry",
    "StoredEngine",
    "USDA_DESCRIPTOR",
    "USDAPricingEngine",
]
