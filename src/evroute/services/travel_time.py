"""Trip duration estimate from the legacy SOAP estimator, with a local fallback."""

from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Literal

import httpx

from ..config import settings
from .http_client import BaseHttpClient, UpstreamServiceError
from .planning.planner import required_stop_count

logger = logging.getLogger(__name__)

SOAP_ENVELOPE = """<?xml version="1.0" encoding="utf-8"?>
<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/" xmlns:tns="{namespace}">
  <soapenv:Body>
    <tns:calculTrajet>
      <distanceKm>{distance_km}</distanceKm>
      <vitesseMoyKmH>{speed_kmh}</vitesseMoyKmH>
      <autonomieKm>{range_km}</autonomieKm>
      <tempsRechargeH>{recharge_h}</tempsRechargeH>
    </tns:calculTrajet>
  </soapenv:Body>
</soapenv:Envelope>"""


class TravelTimeError(UpstreamServiceError):
    """Raised when the estimator answers without a usable duration."""


@dataclass(slots=True)
class TravelTimeEstimate:
    hours: float
    source: Literal["remote", "fallback"]


def fallback_travel_time_hours(
    distance_km: float,
    speed_kmh: float,
    range_km: float,
    recharge_time_h: float,
) -> float:
    """Driving time plus one recharge duration per intermediate stop."""
    if speed_kmh <= 0 or range_km <= 0:
        raise ValueError("speed_kmh and range_km must be positive.")
    return distance_km / speed_kmh + required_stop_count(distance_km, range_km) * recharge_time_h


def _parse_soap_result(payload: str) -> float:
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        raise TravelTimeError("Estimator returned invalid XML.") from exc
    for element in root.iter():
        tag = element.tag.rsplit("}", 1)[-1]
        if tag == "Fault":
            raise TravelTimeError("Estimator returned a SOAP fault.")
        if tag == "return":
            text = (element.text or "").strip().replace(",", ".")
            try:
                value = float(text)
            except ValueError as exc:
                raise TravelTimeError(f"Estimator returned a non-numeric value: {text!r}") from exc
            if not math.isfinite(value) or value < 0:
                raise TravelTimeError(f"Estimator returned an invalid duration: {value}")
            return value
    raise TravelTimeError("Estimator response has no 'return' element.")


class TravelTimeClient(BaseHttpClient):
    service_name = "Travel-time estimator"

    def __init__(
        self,
        base_url: str | None = None,
        *,
        namespace: str = "http://trajet.soap/",
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(base_url or settings.travel_time_url or "", client=client, max_retries=0)
        self.namespace = namespace

    def calcul_trajet(
        self,
        *,
        distance_km: float,
        speed_kmh: float,
        range_km: float,
        recharge_time_h: float,
    ) -> float:
        body = SOAP_ENVELOPE.format(
            namespace=self.namespace,
            distance_km=distance_km,
            speed_kmh=speed_kmh,
            range_km=range_km,
            recharge_h=recharge_time_h,
        )
        response = self._send(
            "POST",
            self.base_url,
            content=body.encode("utf-8"),
            headers={"Content-Type": "text/xml; charset=utf-8", "SOAPAction": "calculTrajet"},
        )
        return _parse_soap_result(response.text)


def estimate_travel_time(
    *,
    distance_km: float,
    speed_kmh: float,
    range_km: float,
    recharge_time_h: float,
    client: TravelTimeClient | None = None,
) -> TravelTimeEstimate:
    """Ask the remote estimator; on any failure use the local formula."""
    try:
        estimator = client or TravelTimeClient()
        hours = estimator.calcul_trajet(
            distance_km=distance_km,
            speed_kmh=speed_kmh,
            range_km=range_km,
            recharge_time_h=recharge_time_h,
        )
        return TravelTimeEstimate(hours=hours, source="remote")
    except (TravelTimeError, ValueError, ConnectionError, httpx.HTTPError) as exc:
        logger.warning(f"Travel-time estimator unavailable ({exc}). Using local formula.")
        hours = fallback_travel_time_hours(distance_km, speed_kmh, range_km, recharge_time_h)
        return TravelTimeEstimate(hours=hours, source="fallback")
