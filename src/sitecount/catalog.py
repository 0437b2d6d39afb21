"""Known dimension values enumerated by the insights dashboard."""

from pydantic import BaseModel, Field

from sitecount.models.dimension import DeviceClass
from sitecount.utils.normalize import DIRECT_REFERRER

DEFAULT_KNOWN_PATHS = ["/"]
DEFAULT_KNOWN_REFERRERS = [
    DIRECT_REFERRER,
    "google.com",
    "instagram.com",
    "facebook.com",
    "linkedin.com",
    "t.co",
    "whatsapp.com",
]
DEFAULT_KNOWN_DEVICES = [
    DeviceClass.PHONE_ANDROID.value,
    DeviceClass.PHONE_IOS.value,
    DeviceClass.DESKTOP.value,
]
DEFAULT_KNOWN_COUNTRIES = [
    "Brazil",
    "Portugal",
    "United States",
    "Argentina",
    "Spain",
    "United Kingdom",
    "Germany",
    "France",
    "Canada",
    "Italy",
]
DEFAULT_KNOWN_STATES = [
    "São Paulo",
    "Rio de Janeiro",
    "Minas Gerais",
    "Paraná",
    "Rio Grande do Sul",
    "Santa Catarina",
    "Bahia",
    "Federal District",
    "Lisbon",
    "California",
]
DEFAULT_KNOWN_CITIES = [
    "São Paulo",
    "Rio de Janeiro",
    "Belo Horizonte",
    "Curitiba",
    "Porto Alegre",
    "Florianópolis",
    "Salvador",
    "Brasília",
    "Lisbon",
    "Porto",
]


class DimensionCatalog(BaseModel):
    """Known values per dimension, in display tie-break order."""

    paths: list[str] = Field(default_factory=lambda: list(DEFAULT_KNOWN_PATHS))
    referrers: list[str] = Field(default_factory=lambda: list(DEFAULT_KNOWN_REFERRERS))
    devices: list[str] = Field(default_factory=lambda: list(DEFAULT_KNOWN_DEVICES))
    countries: list[str] = Field(default_factory=lambda: list(DEFAULT_KNOWN_COUNTRIES))
    states: list[str] = Field(default_factory=lambda: list(DEFAULT_KNOWN_STATES))
    cities: list[str] = Field(default_factory=lambda: list(DEFAULT_KNOWN_CITIES))

