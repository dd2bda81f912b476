from .service import PlaceService, generate_slug, haversine_km

__all__ = ["PlaceService", "generate_slug", "haversine_km"]
