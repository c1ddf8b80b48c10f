"""HTTP clients for the external ATS and enrichment provider."""

from .ats import AtsClient, AtsSearchPage, map_ats_candidate
from .enrichment import EnrichmentClient

__all__ = ["AtsClient", "AtsSearchPage", "EnrichmentClient", "map_ats_candidate"]
