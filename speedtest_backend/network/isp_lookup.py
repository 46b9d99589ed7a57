"""ISP enrichment through an external IP lookup service."""

from __future__ import annotations

import logging
import re
from typing import Optional

import requests

from ..config import EnrichmentConfig
from ..telemetry.models import EnrichmentResult, IspInfo
from .classifier import PROCESSED_SEPARATOR, AddressCategory, classify, describe

LOGGER = logging.getLogger(__name__)

UNKNOWN_ISP = "Unknown ISP"
_AS_PREFIX = re.compile(r"AS\d+\s")


def describe_isp(result: EnrichmentResult) -> str:
    """Human readable ISP string, e.g. ``"Example ISP, Germany"``."""
    isp = _AS_PREFIX.sub("", result.isp)
    if not isp:
        isp = UNKNOWN_ISP
    if result.country_name:
        isp += f", {result.country_name}"
    return isp


class IspLookupClient:
    def __init__(self, config: EnrichmentConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def lookup(self, address: str) -> EnrichmentResult:
        """Fetch ISP details for ``address``.

        Best effort: any failure is logged and an empty result is returned.
        """
        if not address:
            LOGGER.error("No IP address provided for lookup")
            return EnrichmentResult()

        try:
            response = self.session.get(
                self.config.lookup_url,
                params={"ip": address},
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
            result = EnrichmentResult.from_payload(response.json())
        except requests.RequestException as exc:
            LOGGER.error("Error getting response from IP lookup service: %s", exc)
            return EnrichmentResult()
        except (TypeError, ValueError) as exc:
            LOGGER.error("Error parsing response from IP lookup service: %s", exc)
            return EnrichmentResult()

        LOGGER.info("Got IP info for %s: %s", address, result.isp or "<none>")
        return result

    def resolve(self, address: str, with_isp: bool = False) -> IspInfo:
        """Build the payload describing a client address.

        Local and private addresses get a category suffix and are never sent
        to the lookup service.
        """
        category = classify(address)
        if category is not AddressCategory.PUBLIC:
            return IspInfo(processed_string=f"{address}{PROCESSED_SEPARATOR}{describe(category)}")

        info = IspInfo(processed_string=address)
        if with_isp and self.config.enabled:
            result = self.lookup(address)
            info.raw_isp_info = result.to_dict()
            info.processed_string += f"{PROCESSED_SEPARATOR}{describe_isp(result)}"
        return info
