"""Service wiring and system startup."""

from dataclasses import dataclass
from typing import Optional

from .config import Settings, settings as default_settings
from .database import DatabaseManager, db_manager
from .interfaces import AtsGateway, EnrichmentProvider, SessionProvider
from .kv_store import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from .logging import configure_logging, get_logger

logger = get_logger(__name__)


@dataclass
class PortalServices:
    """Container for the long-lived services of one application instance."""

    settings: Settings
    database: Optional[DatabaseManager]
    kv_store: KeyValueStore
    ats: AtsGateway
    enrichment_provider: EnrichmentProvider
    preferences: "PreferenceRepository"
    store: "CandidateService"
    reconciliation: "ReconciliationService"
    pins: "PinService"
    duplicates: "DuplicateDetectionService"
    enrichment: "ContactEnrichmentService"
    batch: "BatchEnrichmentService"

    @classmethod
    def build(
        cls,
        settings: Optional[Settings] = None,
        database: Optional[DatabaseManager] = None,
        kv_store: Optional[KeyValueStore] = None,
        ats: Optional[AtsGateway] = None,
        enrichment_provider: Optional[EnrichmentProvider] = None,
        store=None,
        sleep=None,
    ) -> "PortalServices":
        """Wire the services, substituting any collaborator passed in.

        Args:
            settings: Settings (defaults to the global settings)
            database: Initialized database manager for the canonical store
            kv_store: Overlay storage (defaults to the configured backend)
            ats: ATS gateway (defaults to the aiohttp client)
            enrichment_provider: Enrichment provider (defaults to the aiohttp client)
            store: Canonical store (defaults to the SQLAlchemy service)
            sleep: Awaitable delay used by polling and throttling

        Returns:
            PortalServices
        """
        from partner_portal.clients.ats import AtsClient
        from partner_portal.clients.enrichment import EnrichmentClient
        from partner_portal.repositories.preferences import PreferenceRepository
        from partner_portal.services import (
            BatchEnrichmentService,
            CandidateService,
            ContactEnrichmentService,
            DuplicateDetectionService,
            PinService,
            ReconciliationService,
        )

        settings = settings or default_settings
        if kv_store is None:
            if settings.preference_backend == "memory":
                kv_store = InMemoryKeyValueStore()
            else:
                kv_store = RedisKeyValueStore(settings.redis_url)

        ats = ats or AtsClient()
        enrichment_provider = enrichment_provider or EnrichmentClient()
        preferences = PreferenceRepository(kv_store, prefix=settings.preference_key_prefix)
        store = store or CandidateService(database or db_manager, preferences)
        enrichment = ContactEnrichmentService(enrichment_provider, sleep=sleep)

        logger.info(
            "Portal services built",
            preference_backend=type(kv_store).__name__,
            ats=type(ats).__name__,
            enrichment_provider=type(enrichment_provider).__name__,
        )

        return cls(
            settings=settings,
            database=database,
            kv_store=kv_store,
            ats=ats,
            enrichment_provider=enrichment_provider,
            preferences=preferences,
            store=store,
            reconciliation=ReconciliationService(
                preferences, store=store, ats=ats, min_search_chars=settings.min_search_chars
            ),
            pins=PinService(preferences),
            duplicates=DuplicateDetectionService(ats),
            enrichment=enrichment,
            batch=BatchEnrichmentService(
                enrichment,
                store=store,
                ats=ats,
                throttle_seconds=settings.batch_throttle_seconds,
                sleep=sleep,
            ),
        )

    def activity(self, sessions: SessionProvider) -> "ActivityLogService":
        from partner_portal.services import ActivityLogService

        return ActivityLogService(sessions)

    def registration(self, sessions: SessionProvider) -> "RegistrationService":
        """Registration workflow attributing activity to the given session."""
        from partner_portal.services import RegistrationService

        return RegistrationService(
            self.ats,
            self.store,
            duplicates=self.duplicates,
            activity=self.activity(sessions),
        )


def initialize_system(database: Optional[DatabaseManager] = None) -> PortalServices:
    """Configure logging, prepare the canonical store and build the services."""
    configure_logging()

    database = database or db_manager
    database.initialize()
    database.create_tables()
    if not database.health_check():
        logger.error("Canonical store health check failed at startup")

    services = PortalServices.build(database=database)
    logger.info("System initialization completed", environment=services.settings.environment)
    return services


def shutdown_system(services: Optional[PortalServices]) -> None:
    if services is None:
        return
    if isinstance(services.kv_store, RedisKeyValueStore):
        services.kv_store.close()
    if services.database is not None:
        services.database.close()
    logger.info("System shutdown completed")
