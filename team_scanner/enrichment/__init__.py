from .coordinator import EnrichmentCoordinator, Subscriber, TeamResolver

__all__ = ["EnrichmentCoordinator", "Subscriber", "TeamResolver"]
