"""Geocoding proxy response models."""

from pydantic import BaseModel


class AddressComponent(BaseModel):
    long_name: str = ""
    short_name: str = ""
    types: list[str] = []


class GeocodeResult(BaseModel):
    address_components: list[AddressComponent] = []


class GeocodeResponse(BaseModel):
    """Trimmed geocoding result: only address components reach the browser."""

    status: str
    results: list[GeocodeResult] = []
