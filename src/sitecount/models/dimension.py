"""Visit classification axes."""

from enum import Enum


class Dimension(str, Enum):
    """A named axis of visit classification."""

    PATH = "path"
    REFERRER = "referrer"
    DEVICE = "device"
    DAY = "day"
    COUNTRY = "country"
    STATE = "state"
    CITY = "city"


class DeviceClass(str, Enum):
    """Coarse device class detected from the user agent."""

    PHONE_IOS = "phone-ios"
    PHONE_ANDROID = "phone-android"
    DESKTOP = "desktop"
