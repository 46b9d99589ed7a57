"""
Tests for chart series aggregation.
"""

import json

import pytest

from speedtest_backend.telemetry.chart import ChartAggregator
from speedtest_backend.telemetry.models import TelemetryRecord
from speedtest_backend.telemetry.store import RecordNotFound


EXAMPLE_ISP_INFO = (
    '{"processedString":"203.0.113.9 - Example ISP","rawIspInfo":{"ip":"203.0.113.9"}}'
)


def save(store, **fields):
    values = dict(download="1", upload="1", ping="1", jitter="1", isp_info="{}")
    values.update(fields)
    return store.save(TelemetryRecord(**values))


@pytest.fixture
def aggregator(store):
    return ChartAggregator(store)


class TestBuildSeries:
    def test_end_to_end_example(self, store, aggregator):
        save(
            store,
            ip_address="203.0.113.9",
            download="123.4",
            upload="56.7",
            ping="10",
            jitter="1.5",
            isp_info=EXAMPLE_ISP_INFO,
        )

        points = aggregator.build_series(1)

        assert len(points) == 1
        point = points[0]
        assert point.download == 123.4
        assert point.upload == 56.7
        assert point.ping == 10.0
        assert point.jitter == 1.5
        isp = json.loads(point.isp)
        assert isp["processedString"] == "203.0.113.x - Example ISP"
        assert isp["rawIspInfo"]["ip"] == "203.0.113.x"
        assert "203.0.113.9" not in point.isp

    def test_newest_first(self, store, aggregator):
        for value in ("1", "2", "3"):
            save(store, download=value)

        points = aggregator.build_series(2)

        assert [p.download for p in points] == [3.0, 2.0]
        assert points[0].timestamp >= points[1].timestamp

    def test_unparseable_measurements_become_zero(self, store, aggregator):
        save(store, download="fast", upload="", ping="12.5", jitter="n/a")

        point = aggregator.build_series(1)[0]

        assert (point.download, point.upload, point.ping, point.jitter) == (0.0, 0.0, 12.5, 0.0)

    def test_undecodable_isp_info_falls_back(self, store, aggregator):
        save(store, isp_info="{broken", download="5")

        point = aggregator.build_series(1)[0]

        assert point.download == 5.0
        assert json.loads(point.isp) == {"processedString": "", "rawIspInfo": {"ip": ""}}

    @pytest.mark.parametrize(
        "processed",
        ["203.0.113.9 (Example ISP)", " 203.0.113.9 - Example ISP", "Client 203.0.113.9 - ISP"],
    )
    def test_unextractable_processed_string_is_blanked(self, store, aggregator, processed):
        save(store, isp_info=json.dumps({"processedString": processed, "rawIspInfo": {}}))

        point = aggregator.build_series(1)[0]

        assert "203.0.113.9" not in point.isp
        assert json.loads(point.isp)["processedString"] == ""

    def test_private_addresses_are_kept(self, store, aggregator):
        isp_info = json.dumps(
            {
                "processedString": "192.168.1.20 - private IPv4 access",
                "rawIspInfo": {},
            }
        )
        save(store, isp_info=isp_info)

        isp = json.loads(aggregator.build_series(1)[0].isp)

        assert isp["processedString"] == "192.168.1.20 - private IPv4 access"

    def test_addresses_are_anonymized_independently(self, store, aggregator):
        isp_info = json.dumps(
            {
                "processedString": "2001:db8:85a3::8a2e:370:7334 - Example ISP, Germany",
                "rawIspInfo": {"ip": "198.51.100.77", "country_name": "Germany"},
            }
        )
        save(store, isp_info=isp_info)

        isp = json.loads(aggregator.build_series(1)[0].isp)

        assert isp["processedString"] == "2001:db8:85a3:: - Example ISP, Germany"
        assert isp["rawIspInfo"] == {"ip": "198.51.100.x", "country_name": "Germany"}

    def test_bare_public_address_is_anonymized(self, store, aggregator):
        save(store, isp_info='{"processedString":"203.0.113.9","rawIspInfo":{}}')

        isp = json.loads(aggregator.build_series(1)[0].isp)

        assert isp["processedString"] == "203.0.113.x"

    def test_empty_isp_info(self, store, aggregator):
        save(store, isp_info="{}")

        isp = json.loads(aggregator.build_series(1)[0].isp)

        assert isp == {"processedString": "", "rawIspInfo": {"ip": ""}}

    def test_missing_bucket_propagates(self, aggregator):
        with pytest.raises(RecordNotFound):
            aggregator.build_series(5)

    def test_to_dict(self, store, aggregator):
        save(store, isp_info=EXAMPLE_ISP_INFO)

        payload = aggregator.build_series(1)[0].to_dict()

        assert set(payload) == {"timestamp", "download", "upload", "ping", "jitter", "isp"}
        assert isinstance(payload["timestamp"], str)
