"""Test config resolution and validation with Pydantic."""

import pytest
from pydantic import ValidationError

from aura.schemas import CITY_PRESETS, CLIConfig, InternalConfig, ParamConfig, UserConfig, resolve_config

pytestmark = pytest.mark.unit


class TestConfigResolution:
    """Test resolve_config() precedence and merging."""

    def test_resolve_config_all_defaults(self):
        """Resolving with no user/CLI overrides uses all ParamConfig defaults."""
        config = resolve_config(ParamConfig(), None, None)

        assert isinstance(config, InternalConfig)
        assert config.region.city == "kuala_lumpur"
        assert config.region.name == "Kuala Lumpur"
        assert config.region.buffer_m == 20000.0
        assert config.period.start_year == 2000
        assert config.period.end_year == 2020
        assert config.grid.resolution_m == 500.0
        assert config.grid.smoothing_size == 3
        assert config.sampling.sample_size == 500
        assert config.sampling.seed == 0

    def test_user_config_overrides_param_config(self):
        """UserConfig values override ParamConfig defaults."""
        user = UserConfig(SEED=7, SAMPLE_SIZE=1000, START_YEAR=2005)
        config = resolve_config(ParamConfig(), user, None)

        assert config.sampling.seed == 7
        assert config.sampling.sample_size == 1000
        assert config.period.start_year == 2005

    def test_cli_overrides_user(self):
        """CLI wins over the user file; untouched user values survive."""
        user = UserConfig(CITY="colombo", SEED=7, BASE_DIR="/tmp/aura")
        cli = CLIConfig(city="jakarta")
        config = resolve_config(ParamConfig(), user, cli)

        assert config.region.name == "Jakarta"
        assert config.region.latitude == pytest.approx(-6.2088)
        assert config.sampling.seed == 7
        assert config.base_dir == "/tmp/aura"

    def test_cli_overrides_do_not_mutate_user(self):
        user = UserConfig.model_validate({"CITY": "mumbai"})
        resolve_config(ParamConfig(), user, CLIConfig(city="colombo"))

        assert user.city == "mumbai"

    def test_empty_user_config_uses_all_param_defaults(self):
        config = resolve_config(ParamConfig(), UserConfig(), CLIConfig())

        assert config.region.city == "kuala_lumpur"
        assert config.visualization.enabled is True

    def test_dict_inputs_are_accepted(self):
        config = resolve_config({}, {"CITY": "Hangzhou"}, {"seed": 11})

        assert config.region.name == "Hangzhou"
        assert config.sampling.seed == 11

    def test_internal_config_is_frozen(self):
        config = resolve_config(ParamConfig(), None, None)

        with pytest.raises(ValidationError):
            config.base_dir = "/elsewhere"

    def test_no_plots_flag_disables_visualization(self):
        config = resolve_config(ParamConfig(), None, CLIConfig(no_plots=True))

        assert config.visualization.enabled is False


class TestRegionResolution:
    """City presets and explicit coordinates."""

    @pytest.mark.parametrize("city", sorted(CITY_PRESETS))
    def test_every_preset_resolves(self, city):
        config = resolve_config(ParamConfig(), UserConfig(CITY=city), None)
        name, lon, lat = CITY_PRESETS[city]

        assert config.region.name == name
        assert config.region.longitude == pytest.approx(lon)
        assert config.region.latitude == pytest.approx(lat)

    def test_city_spelling_is_normalized(self):
        config = resolve_config(ParamConfig(), UserConfig(CITY="Kuala Lumpur"), None)

        assert config.region.city == "kuala_lumpur"
        assert config.city_slug == "kuala_lumpur"

    def test_explicit_coordinates_replace_default_city(self):
        user = UserConfig(LONGITUDE=2.35, LATITUDE=48.85, CITY_NAME="Paris")
        config = resolve_config(ParamConfig(), user, None)

        assert config.region.city is None
        assert config.region.name == "Paris"
        assert config.region.longitude == pytest.approx(2.35)

    def test_explicit_coordinates_without_name_get_generated_name(self):
        config = resolve_config(ParamConfig(), UserConfig(LONGITUDE=10, LATITUDE=20), None)

        assert config.region.name == "region_20.0000_10.0000"

    def test_unknown_city_rejected(self):
        with pytest.raises(ValidationError, match="Unknown region.city"):
            resolve_config(ParamConfig(), UserConfig(CITY="atlantis"), None)

    def test_single_coordinate_rejected(self):
        with pytest.raises(ValidationError, match="longitude"):
            resolve_config(ParamConfig(), UserConfig(LONGITUDE=10), None)


class TestDeepMerge:

    def test_nested_values_merge(self):
        from aura.schemas import deep_merge

        base = {"a": 1, "b": {"c": 2, "d": 3}}
        merged = deep_merge(base, {"b": {"d": 4, "e": 5}, "f": 6})

        assert merged == {"a": 1, "b": {"c": 2, "d": 4, "e": 5}, "f": 6}
        assert base == {"a": 1, "b": {"c": 2, "d": 3}}

    def test_later_overrides_win(self):
        from aura.schemas import deep_merge

        assert deep_merge({"a": 1}, {"a": 2}, {"a": 3}) == {"a": 3}
