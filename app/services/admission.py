"""Serviceability gate run before an order touches stock."""
import logging
import math
import re

from app.geo import ServiceArea
from app.services.errors import OrderError

logger = logging.getLogger(__name__)

OUTSIDE_SERVICE_AREA = "Sorry, this address is outside our service area."

_PINCODE_RE = re.compile(r"[0-9]{6}")


def is_pincode(value):
    return bool(_PINCODE_RE.fullmatch(value or ""))


def has_coords(lat, lng):
    """True when both coordinates are real, finite numbers."""
    for value in (lat, lng):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value):
            return False
    return True


class AdmissionPolicy:
    """Decides whether an address is deliverable.

    Coordinates, when present, are judged by the service-area polygons alone.
    Otherwise the 6-digit pincode must be in the allow-list; an empty
    allow-list admits any well-formed pincode.
    """

    def __init__(self, service_area=None, pincodes=()):
        self._service_area = service_area or ServiceArea()
        self._pincodes = frozenset(p.strip() for p in pincodes if p and p.strip())

    @property
    def service_area(self):
        return self._service_area

    @property
    def pincodes(self):
        return self._pincodes

    def check(self, address):
        """Raise OrderError unless ``address`` can be served."""
        lat = getattr(address, "lat", None)
        lng = getattr(address, "lng", None)

        if has_coords(lat, lng):
            try:
                inside = self._service_area.contains(lat, lng)
            except Exception:
                logger.exception("Geofence evaluation failed for (%s, %s)", lat, lng)
                inside = False
            if not inside:
                logger.info("Rejected coordinates outside service area: %s, %s", lat, lng)
                raise OrderError(OUTSIDE_SERVICE_AREA)
            return

        self.check_pincode(getattr(address, "pincode", None))

    def check_pincode(self, pincode):
        pin = (pincode or "").strip()
        if not is_pincode(pin):
            raise OrderError("Invalid pincode")
        if self._pincodes and pin not in self._pincodes:
            logger.info("Rejected pincode outside allow-list: %s", pin)
            raise OrderError(OUTSIDE_SERVICE_AREA)


def init_admission(app):
    """Build the admission policy from config and attach it to the app."""
    area = ServiceArea.load(app.config.get("SERVICE_AREA_PATH", ""))
    policy = AdmissionPolicy(area, app.config.get("SERVICE_PINCODES", []))
    app.extensions["admission"] = policy
    return policy
