"""
Tests for the ISP enrichment client.
"""

from unittest.mock import MagicMock

import pytest
import requests

from speedtest_backend.config import EnrichmentConfig
from speedtest_backend.network.isp_lookup import UNKNOWN_ISP, IspLookupClient, describe_isp
from speedtest_backend.telemetry.models import EnrichmentResult


LOOKUP_PAYLOAD = {
    "ip": "203.0.113.9",
    "asn": "64500",
    "domain": "example.net",
    "isp": "AS64500 Example ISP",
    "continent_code": "EU",
    "continent_name": "Europe",
    "country_code": "DE",
    "country_name": "Germany",
}


def make_response(status_code=200, payload=None, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Server Error")
    else:
        response.raise_for_status.return_value = None
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def lookup_client(session):
    config = EnrichmentConfig(lookup_url="http://lookup.invalid/api", timeout_seconds=2)
    return IspLookupClient(config, session=session)


class TestLookup:
    """Tests for the outbound lookup call."""

    def test_success(self, lookup_client, session):
        session.get.return_value = make_response(payload=LOOKUP_PAYLOAD)

        result = lookup_client.lookup("203.0.113.9")

        assert result.ip == "203.0.113.9"
        assert result.isp == "AS64500 Example ISP"
        assert result.country_name == "Germany"
        session.get.assert_called_once_with(
            "http://lookup.invalid/api", params={"ip": "203.0.113.9"}, timeout=2
        )

    def test_empty_address_skips_call(self, lookup_client, session):
        result = lookup_client.lookup("")

        assert result.is_empty
        session.get.assert_not_called()

    def test_server_error_yields_empty_result(self, lookup_client, session):
        session.get.return_value = make_response(status_code=500)

        result = lookup_client.lookup("203.0.113.9")

        assert result.is_empty
        assert describe_isp(result) == UNKNOWN_ISP
        assert session.get.call_count == 1

    def test_malformed_json_yields_empty_result(self, lookup_client, session):
        session.get.return_value = make_response(json_error=ValueError("Expecting value"))

        result = lookup_client.lookup("203.0.113.9")

        assert result.is_empty
        assert describe_isp(result) == UNKNOWN_ISP

    def test_non_object_json_yields_empty_result(self, lookup_client, session):
        session.get.return_value = make_response(payload=["not", "an", "object"])

        assert lookup_client.lookup("203.0.113.9").is_empty

    def test_transport_error_yields_empty_result(self, lookup_client, session):
        session.get.side_effect = requests.ConnectionError("connection refused")

        assert lookup_client.lookup("203.0.113.9").is_empty


class TestDescribeIsp:
    def test_strips_as_number_and_appends_country(self):
        result = EnrichmentResult(isp="AS64500 Example ISP", country_name="Germany")
        assert describe_isp(result) == "Example ISP, Germany"

    def test_unknown_isp_with_country(self):
        assert describe_isp(EnrichmentResult(country_name="Germany")) == "Unknown ISP, Germany"

    def test_as_number_only(self):
        assert describe_isp(EnrichmentResult(isp="AS64500 ")) == UNKNOWN_ISP


class TestResolve:
    """Tests for the getIP payload builder."""

    def test_private_address_short_circuits(self, lookup_client, session):
        info = lookup_client.resolve("192.168.1.20", with_isp=True)

        assert info.processed_string == "192.168.1.20 - private IPv4 access"
        assert info.raw_isp_info == {}
        session.get.assert_not_called()

    def test_public_address_without_isp(self, lookup_client, session):
        info = lookup_client.resolve("203.0.113.9")

        assert info.processed_string == "203.0.113.9"
        session.get.assert_not_called()

    def test_public_address_with_isp(self, lookup_client, session):
        session.get.return_value = make_response(payload=LOOKUP_PAYLOAD)

        info = lookup_client.resolve("203.0.113.9", with_isp=True)

        assert info.processed_string == "203.0.113.9 - Example ISP, Germany"
        assert info.raw_isp_info["asn"] == "64500"

    def test_enrichment_disabled(self, session):
        config = EnrichmentConfig(enabled=False)
        client = IspLookupClient(config, session=session)

        info = client.resolve("203.0.113.9", with_isp=True)

        assert info.processed_string == "203.0.113.9"
        session.get.assert_not_called()
