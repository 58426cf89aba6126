"""Test const module."""

import json

from custom_components.opnsense_switches.const import (
    GATEWAY_MIN_POLL_INTERVAL,
    MANIFEST_PATH,
    VERSION,
    EngineSettings,
    GatewaySettings,
    SensorKind,
    StatusMethod,
)


class TestVersion:
    """Test cases for VERSION constant."""

    def test_manifest_path_exists(self) -> None:
        """MANIFEST_PATH should point to an existing file."""
        assert MANIFEST_PATH.exists()

    def test_version_matches_manifest(self) -> None:
        """VERSION should match the version in manifest.json."""
        manifest = json.loads(MANIFEST_PATH.read_text())
        assert manifest["version"] == VERSION


class TestSensorKind:
    """Test cases for reachability encoding."""

    def test_occupancy(self) -> None:
        """Occupancy reports an online gateway as on."""
        assert SensorKind.OCCUPANCY.is_on(True) is True
        assert SensorKind.OCCUPANCY.is_on(False) is False

    def test_contact(self) -> None:
        """Contact reports an online gateway as closed (off)."""
        assert SensorKind.CONTACT.is_on(True) is False
        assert SensorKind.CONTACT.is_on(False) is True


class TestEngineSettings:
    """Test cases for EngineSettings.from_options."""

    def test_defaults(self) -> None:
        """An empty section yields the defaults."""
        settings = EngineSettings.from_options({})
        assert settings == EngineSettings()
        assert settings.status_method is StatusMethod.GET_RULE
        assert settings.status_ttl == 3.0
        assert settings.poll_interval == 30

    def test_values(self) -> None:
        """Stored values are parsed."""
        settings = EngineSettings.from_options(
            {
                "status_method": "searchRule",
                "apply_after_toggle": True,
                "request_timeout": "20",
                "status_ttl": 0,
                "poll_interval": 0,
            }
        )
        assert settings.status_method is StatusMethod.SEARCH_RULE
        assert settings.apply_after_toggle is True
        assert settings.request_timeout == 20
        assert settings.status_ttl == 0.0
        assert settings.poll_interval == 0

    def test_invalid_values_fall_back(self) -> None:
        """Unknown methods and negative intervals are corrected."""
        settings = EngineSettings.from_options(
            {"status_method": "guess", "poll_interval": -5}
        )
        assert settings.status_method is StatusMethod.GET_RULE
        assert settings.poll_interval == 0


class TestGatewaySettings:
    """Test cases for GatewaySettings.from_options."""

    def test_defaults(self) -> None:
        """Gateways are disabled and reported as occupancy by default."""
        settings = GatewaySettings.from_options({})
        assert settings.enabled is False
        assert settings.poll_interval == 30
        assert settings.sensor_kind is SensorKind.OCCUPANCY
        assert settings.include == []

    def test_poll_interval_floor(self) -> None:
        """The poll interval is never below the floor."""
        settings = GatewaySettings.from_options({"poll_interval": 1})
        assert settings.poll_interval == GATEWAY_MIN_POLL_INTERVAL

    def test_sensor_kind(self) -> None:
        """Only an explicit contact selects contact sensors."""
        assert (
            GatewaySettings.from_options({"sensor_kind": "contact"}).sensor_kind
            is SensorKind.CONTACT
        )
        assert (
            GatewaySettings.from_options({"sensor_kind": "presence"}).sensor_kind
            is SensorKind.OCCUPANCY
        )

    def test_include(self) -> None:
        """Empty include entries are dropped."""
        settings = GatewaySettings.from_options({"include": ["WAN", "", "VPN"]})
        assert settings.include == ["WAN", "VPN"]
