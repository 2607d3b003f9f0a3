from relay.config import Settings, secret_values, sticker_set_names, timing_from_settings


def _settings(**overrides) -> Settings:
    values = {
        "TELEGRAM_BOT_TOKEN": "123:ABC",
        "TELEGRAM_BOT_USERNAME": "relay_bot",
        "OPENROUTER_API_KEY": "sk-or",
        "OPENROUTER_MODEL": "openrouter/model",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_defaults_match_reply_timing():
    timing = timing_from_settings(_settings())

    assert (timing.idle.min_ms, timing.idle.max_ms) == (60_000, 600_000)
    assert (timing.read.min_ms, timing.read.max_ms) == (5_000, 15_000)
    assert (timing.typing.min_ms, timing.typing.max_ms) == (2_000, 5_000)
    assert timing.staleness_business_seconds == 900


def test_sticker_sets_are_split_and_trimmed():
    assert sticker_set_names(_settings(STICKER_SETS="pack_a, pack_b,,")) == ["pack_a", "pack_b"]
    assert sticker_set_names(_settings()) == []


def test_secret_values_skip_empty_credentials():
    assert secret_values(_settings()) == ["123:ABC", "sk-or"]
