import pytest

from dispatch.policy import DEFAULT_MERCHANT_LOCATION, DispatchPolicy, default_dispatch_policy
from dispatch.settings import load_settings

ENV_KEYS = [
    "MERCHANT_LAT",
    "MERCHANT_LNG",
    "SIM_SPEED_MPS",
    "SIM_TICK_MS",
    "SIM_TRAFFIC_ENABLED",
    "SIM_SEED",
    "AUTO_COMPLETE_ON_ARRIVAL",
    "REQUIRE_PAYMENT_BEFORE_ASSIGN",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # setenv + delenv: the key starts absent and is removed again on teardown,
    # even if load_dotenv writes it in between
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "placeholder")
        monkeypatch.delenv(key)
    return tmp_path


def test_defaults(clean_env):
    settings = load_settings(env_file=str(clean_env / "missing.env"))

    assert settings.dispatch.merchant_location == DEFAULT_MERCHANT_LOCATION
    assert settings.dispatch.require_payment_before_assign is False
    assert settings.dispatch.auto_complete_on_arrival is True
    assert settings.simulation.speed_mps == 10.0
    assert settings.simulation.tick_interval_ms == 250
    assert settings.simulation.traffic_enabled is True
    assert settings.simulation.seed is None
    assert settings.log_level == "INFO"


def test_env_file_and_process_env(clean_env, monkeypatch):
    env_file = clean_env / ".env"
    env_file.write_text(
        "MERCHANT_LAT=-26.2041\n"
        "MERCHANT_LNG=28.0473\n"
        "SIM_SPEED_MPS=18\n"
        "SIM_TRAFFIC_ENABLED=off\n"
        "SIM_SEED=99\n"
        "LOG_LEVEL=debug\n"
    )
    # the process environment wins over the file
    monkeypatch.setenv("SIM_SPEED_MPS", "12.5")
    monkeypatch.setenv("REQUIRE_PAYMENT_BEFORE_ASSIGN", "yes")

    settings = load_settings(env_file=str(env_file))

    assert settings.dispatch.merchant_location == (-26.2041, 28.0473)
    assert settings.dispatch.require_payment_before_assign is True
    assert settings.simulation.speed_mps == 12.5
    assert settings.simulation.traffic_enabled is False
    assert settings.simulation.seed == 99
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "key, value",
    [
        ("SIM_SPEED_MPS", "fast"),
        ("SIM_TICK_MS", "0"),
        ("SIM_TRAFFIC_ENABLED", "sometimes"),
        ("MERCHANT_LAT", "120"),
    ],
)
def test_bad_values_are_rejected(clean_env, monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    with pytest.raises(ValueError):
        load_settings(env_file=str(clean_env / "missing.env"))


def test_dispatch_policy_validation():
    default_dispatch_policy()
    with pytest.raises(ValueError):
        DispatchPolicy(match_radius_m=0).validate()
    with pytest.raises(ValueError):
        DispatchPolicy(max_match_candidates=0).validate()
