from app.geo.service_area import ServiceArea

__all__ = ["ServiceArea"]
