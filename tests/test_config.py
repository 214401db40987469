import pytest

from pymandel.config import ConfigError, EngineConfig


def test_defaults_are_valid():
    config = EngineConfig()
    assert config.center_re == "-0.75"
    assert config.mu == 10000.0


@pytest.mark.parametrize("field, value", [
    ("center_re", "abc"),
    ("center_im", ""),
    ("center_re", "nan"),
    ("center_im", "inf"),
    ("escape_radius", "two"),
    ("escape_radius", "-1"),
    ("escape_radius", "0"),
])
def test_unusable_values_abort_construction(field, value):
    with pytest.raises(ConfigError):
        EngineConfig(**{field: value})


@pytest.mark.parametrize("overrides", [
    dict(zoom=0.0),
    dict(zoom=-1.0),
    dict(capacity=0),
    dict(maximum_iterations=0),
    dict(frame_budget=0),
    dict(precision_digits=0),
    dict(width=0),
])
def test_invalid_limits(overrides):
    with pytest.raises(ConfigError):
        EngineConfig(**overrides)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


def test_long_decimal_strings_are_accepted():
    EngineConfig(
        center_re="-1.9073395970641375017156346454",
        center_im="0.00062538602748309027910015455",
    )


def test_maximum_iterations_clamped_to_capacity():
    config = EngineConfig(capacity=500, maximum_iterations=20_000)
    assert config.maximum_iterations == 500
