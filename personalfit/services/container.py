"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    The gamification store is injected; it defaults to the Postgres store.
    """

    # Infrastructure dependencies (injected)
    store: Optional[object] = None  # GamificationStore implementation
    tz_name: Optional[str] = None

    # Services (lazy-loaded via properties)
    _gamification_service: Optional[object] = field(default=None, init=False, repr=False)
    _adherence_service: Optional[object] = field(default=None, init=False, repr=False)
    _correlation_service: Optional[object] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if self.store is None:
            from personalfit.gamification.postgres_store import PostgresGamificationStore
            self.store = PostgresGamificationStore()

    @property
    def gamification_service(self):
        """Get GamificationService instance (lazy-loaded)"""
        if self._gamification_service is None:
            from personalfit.services.gamification_service import GamificationService
            self._gamification_service = GamificationService(self.store, tz_name=self.tz_name)
            logger.debug("GamificationService instantiated")
        return self._gamification_service

    @property
    def adherence_service(self):
        """Get AdherenceService instance (lazy-loaded)"""
        if self._adherence_service is None:
            from personalfit.services.adherence_service import AdherenceService
            self._adherence_service = AdherenceService(tz_name=self.tz_name)
            logger.debug("AdherenceService instantiated")
        return self._adherence_service

    @property
    def correlation_service(self):
        """Get CorrelationService instance (lazy-loaded)"""
        if self._correlation_service is None:
            from personalfit.services.correlation_service import CorrelationService
            self._correlation_service = CorrelationService(tz_name=self.tz_name)
            logger.debug("CorrelationService instantiated")
        return self._correlation_service


# Global container instance (initialized in main.py)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() in main.py before using services."
        )
    return _container


def init_container(store: Optional[object] = None, tz_name: Optional[str] = None) -> ServiceContainer:
    """
    Initialize the global service container.

    Should be called once in main.py after infrastructure setup.
    """
    global _container

    _container = ServiceContainer(store=store, tz_name=tz_name)

    logger.info("Service container initialized")
    return _container
