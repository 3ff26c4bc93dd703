from __future__ import annotations

from ..extensions import db


def normalize_location(value: str | None) -> str | None:
    """City/area are stored trimmed and lower-cased so lookups are case-insensitive."""
    if value is None:
        return None
    value = str(value).strip().lower()
    return value or None


class LocationMixin:
    country = db.Column(db.String(80), nullable=True)
    city = db.Column(db.String(80), nullable=True, index=True)
    area = db.Column(db.String(80), nullable=True, index=True)

    def set_location(self, country=None, city=None, area=None) -> None:
        """Blank parts keep the stored value; a post never drops out of area matching."""
        if country is not None and str(country).strip():
            self.country = str(country).strip()
        if normalize_location(city):
            self.city = normalize_location(city)
        if normalize_location(area):
            self.area = normalize_location(area)

    def location_dict(self) -> dict:
        return {"country": self.country, "city": self.city, "area": self.area}
