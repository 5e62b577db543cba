"""Engine registry: name -> engine lookup and fan-out search with per-engine failure isolation."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from auditdna.application.engine_repository import EngineRepository
from auditdna.config.settings import AppSettings
from auditdna.core.context import engine_ctx
from auditdna.domain.exceptions import EngineAlreadyRegisteredError, EngineNotFoundError
from auditdna.domain.models.engine import SearchOptions
from auditdna.engines.base import Engine
from auditdna.engines.basic import BASIC_ENGINE_DESCRIPTORS, BasicEngine
from auditdna.engines.mock_data import generate_generic_records, generate_usda_records
from auditdna.engines.usda_pricing import USDAPricingEngine

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_TIMEOUT_SECONDS = 5.0


class EngineRegistry:
    """
    Process-scoped. Registration order is preserved and is the order of
    list_names(), system_status() and dispatch_all() results.
    """

    def __init__(self, search_timeout_seconds: float = DEFAULT_SEARCH_TIMEOUT_SECONDS) -> None:
        self._engines: Dict[str, Engine] = {}
        self._search_timeout = search_timeout_seconds

    def register(self, name: str, engine: Engine) -> None:
        if name in self._engines:
            raise EngineAlreadyRegisteredError(f"Engine '{name}' is already registered")
        self._engines[name] = engine
        logger.info("engine_registered", extra={"engine_name": name})

    def get(self, name: str) -> Optional[Engine]:
        return self._engines.get(name)

    def require(self, name: str) -> Engine:
        """Lookup that raises EngineNotFoundError listing the registered names."""
        engine = self._engines.get(name)
        if engine is None:
            raise EngineNotFoundError(name, self.list_names())
        return engine

    def list_names(self) -> List[str]:
        return list(self._engines)

    def __len__(self) -> int:
        return len(self._engines)

    def __contains__(self, name: object) -> bool:
        return name in self._engines

    async def _isolated_search(
        self,
        name: str,
        engine: Engine,
        query: Optional[str],
        filters: Mapping[str, Any],
        options: SearchOptions,
    ) -> Dict[str, Any]:
        """Never raises: any failure, including timeout, becomes an error envelope."""
        token = engine_ctx.set(name)
        try:
            result = await asyncio.wait_for(
                engine.search(query, filters, options), timeout=self._search_timeout
            )
            return result.to_dict()
        except asyncio.TimeoutError:
            error = f"Search timed out after {self._search_timeout:g}s"
        except Exception as e:
            error = getattr(e, "message", None) or str(e) or type(e).__name__
        finally:
            engine_ctx.reset(token)
        logger.warning("engine_search_failed", extra={"engine_name": name, "error": error})
        return {"engine": name, "error": error, "results": [], "pagination": {"total": 0}}

    async def dispatch_all(
        self,
        query: Optional[str],
        filters: Optional[Mapping[str, Any]] = None,
        options: Optional[SearchOptions] = None,
    ) -> Dict[str, Any]:
        """
        Search every engine concurrently. The result has one entry per
        registered engine whatever happens; failed engines are listed in
        failedEngines and flip partialFailure.
        """
        filters = dict(filters or {})
        options = options or SearchOptions()
        names = self.list_names()
        outcomes = await asyncio.gather(
            *(
                self._isolated_search(name, self._engines[name], query, filters, options)
                for name in names
            )
        )
        results = dict(zip(names, outcomes))
        failed = [name for name, outcome in results.items() if "error" in outcome]
        return {
            "query": query,
            "engines": names,
            "results": results,
            "failedEngines": failed,
            "partialFailure": bool(failed),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def system_status(self) -> Dict[str, Any]:
        """Read-only view of the registry."""
        return {
            "totalEngines": len(self._engines),
            "engines": {name: engine.descriptor.to_dict() for name, engine in self._engines.items()},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def demo_data(self) -> Dict[str, Any]:
        demos = await asyncio.gather(*(engine.demo_data() for engine in self._engines.values()))
        return dict(zip(self.list_names(), demos))


async def build_default_registry(repository: EngineRepository, settings: AppSettings) -> EngineRegistry:
    """Register the USDA pricing engine and the generic engines, seeding mock records when the store is empty."""
    registry = EngineRegistry(search_timeout_seconds=settings.engine_search_timeout_seconds)
    count = settings.mock_records_per_engine

    usda = USDAPricingEngine(repository)
    registry.register(usda.name, usda)
    if count and not await repository.list_records(usda.name):
        await repository.save_records(usda.name, generate_usda_records(usda.name, count, settings.mock_seed))

    for descriptor in BASIC_ENGINE_DESCRIPTORS:
        engine = BasicEngine(descriptor, repository)
        registry.register(descriptor.name, engine)
        if count and not await repository.list_records(descriptor.name):
            await repository.save_records(
                descriptor.name, generate_generic_records(descriptor, count, settings.mock_seed)
            )

    logger.info("engine_registry_ready", extra={"engines": registry.list_names()})
    return registry
