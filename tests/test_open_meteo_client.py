import datetime as dt
import logging
import unittest

from bikecast.data_sources import open_meteo_client
from bikecast.data_sources.open_meteo_client import OpenMeteoClient, condition_from_wmo
from bikecast.domain import InvalidInputData


class DummyResp:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self._payload


class DummySession:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        return DummyResp(self.payload)


def _make_current_payload():
    return {
        "timezone": "Europe/Berlin",
        "utc_offset_seconds": 7200,
        "current": {
            "time": "2024-06-01T12:00",
            "temperature_2m": 21.0,
            "precipitation": 0.0,
            "cloud_cover": 10.0,
            "wind_speed_10m": 3.0,
            "weather_code": 1,
            "is_day": 1,
        },
        "current_units": {"temperature_2m": "°C", "wind_speed_10m": "m/s", "precipitation": "mm"},
        "daily": {
            "time": ["2024-06-01"],
            "sunrise": ["2024-06-01T05:00"],
            "sunset": ["2024-06-01T21:30"],
        },
    }


def _make_hourly_payload():
    return {
        "timezone": "Europe/Berlin",
        "utc_offset_seconds": 7200,
        "hourly": {
            "time": ["2024-06-01T12:00", "2024-06-01T13:00", "2024-06-01T14:00"],
            "temperature_2m": [21.0, None, 23.0],
            "precipitation": [0.0, 0.0, 1.2],
            "precipitation_probability": [5, 10, 80],
            "cloud_cover": [10, 20, 90],
            "wind_speed_10m": [3.0, 3.5, 6.0],
            "weather_code": [0, 2, 63],
            "uv_index": [6.1, 5.0, None],
            "is_day": [1, 1, 1],
        },
        "hourly_units": {
            "temperature_2m": "°C",
            "precipitation": "mm",
            "precipitation_probability": "%",
            "cloud_cover": "%",
            "wind_speed_10m": "m/s",
        },
    }


class TestOpenMeteoClient(unittest.TestCase):
    def test_fetch_current_sun_times_and_timezone(self):
        session = DummySession(_make_current_payload())
        client = OpenMeteoClient(session=session)
        current = client.fetch_current(52.52, 13.41)

        self.assertEqual(current.timezone, "Europe/Berlin")
        self.assertEqual(current.utc_offset_seconds, 7200)
        self.assertEqual(current.sun.sunrise.hour, 5)
        self.assertEqual(current.sun.sunset.utcoffset(), dt.timedelta(hours=2))
        self.assertEqual(current.sample.condition.main, "Clouds")
        self.assertIsNone(current.location_name)

        params = session.calls[0]["params"]
        self.assertEqual(params["daily"], "sunrise,sunset")
        self.assertEqual(params["wind_speed_unit"], "ms")
        self.assertEqual(params["forecast_days"], 1)

    def test_fetch_current_without_sun_times_raises(self):
        payload = _make_current_payload()
        payload["daily"] = {"time": ["2024-06-01"]}
        client = OpenMeteoClient(session=DummySession(payload))
        with self.assertRaises(InvalidInputData):
            client.fetch_current(52.52, 13.41)

    def test_fetch_hourly_parses_samples(self):
        session = DummySession(_make_hourly_payload())
        client = OpenMeteoClient(session=session, timeout=3.0)
        samples = client.fetch_hourly(52.52, 13.41, forecast_days=4)

        # hour without temperature is dropped
        self.assertEqual(len(samples), 2)
        first, last = samples
        self.assertEqual(first.time, dt.datetime(2024, 6, 1, 12, tzinfo=first.time.tzinfo))
        self.assertEqual(str(first.time.tzinfo), "Europe/Berlin")
        self.assertEqual(first.uv_index, 6.1)
        self.assertEqual(first.condition.main, "Clear")
        self.assertEqual(last.precipitation_mm, 1.2)
        self.assertEqual(last.precipitation_probability, 80)
        self.assertEqual(last.condition.main, "Rain")
        self.assertIsNone(last.uv_index)

        call = session.calls[0]
        self.assertEqual(call["params"]["forecast_days"], 4)
        self.assertIn("weather_code", call["params"]["hourly"])
        self.assertEqual(call["timeout"], 3.0)

    def test_partial_current_block_raises_invalid_input(self):
        for missing in ("time", "temperature_2m"):
            with self.subTest(missing=missing):
                payload = _make_current_payload()
                del payload["current"][missing]
                client = OpenMeteoClient(session=DummySession(payload))
                with self.assertRaises(InvalidInputData):
                    client.fetch_current(52.52, 13.41)

    def test_malformed_sun_times_raise_invalid_input(self):
        payload = _make_current_payload()
        payload["daily"]["sunrise"] = ["not-a-time"]
        client = OpenMeteoClient(session=DummySession(payload))
        with self.assertRaises(InvalidInputData):
            client.fetch_current(52.52, 13.41)

    def test_unknown_provider_timezone_uses_offset(self):
        payload = _make_current_payload()
        payload["timezone"] = "Mars/Olympus"
        current = OpenMeteoClient(session=DummySession(payload)).fetch_current(52.52, 13.41)
        self.assertIsNone(current.timezone)
        self.assertEqual(current.sun.sunrise.utcoffset(), dt.timedelta(hours=2))

    def test_invalid_hourly_values_raise_invalid_input(self):
        payload = _make_hourly_payload()
        payload["hourly"]["precipitation"] = [0.0, 0.0, -1.0]
        client = OpenMeteoClient(session=DummySession(payload))
        with self.assertRaises(InvalidInputData):
            client.fetch_hourly(52.52, 13.41)

        payload = _make_hourly_payload()
        payload["hourly"]["time"][0] = "yesterday"
        client = OpenMeteoClient(session=DummySession(payload))
        with self.assertRaises(InvalidInputData):
            client.fetch_hourly(52.52, 13.41)

    def test_fetch_hourly_without_data_raises(self):
        client = OpenMeteoClient(session=DummySession({"timezone": "UTC"}))
        with self.assertRaises(InvalidInputData):
            client.fetch_hourly(0.0, 0.0)

    def test_unexpected_units_warn(self):
        payload = _make_hourly_payload()
        payload["hourly_units"]["wind_speed_10m"] = "km/h"
        client = OpenMeteoClient(session=DummySession(payload))
        with self.assertLogs(open_meteo_client.logger.logger, level=logging.WARNING) as captured:
            client.fetch_hourly(52.52, 13.41)
        self.assertTrue(any("Unexpected Open-Meteo unit" in line for line in captured.output))


class TestConditionFromWmo(unittest.TestCase):
    def test_known_codes(self):
        storm = condition_from_wmo(95, 1)
        self.assertEqual(storm.main, "Thunderstorm")
        self.assertEqual(storm.icon, "11d")
        self.assertEqual(condition_from_wmo(99).main, "Hail")
        self.assertEqual(condition_from_wmo(66).main, "Ice")

    def test_night_icon(self):
        self.assertEqual(condition_from_wmo(0, 0).icon, "01n")

    def test_unknown_code(self):
        cond = condition_from_wmo(12345)
        self.assertEqual(cond.main, "Unknown")
        self.assertEqual(condition_from_wmo(None).main, "Unknown")


if __name__ == "__main__":
    unittest.main()
