import backend.config_base as cfg
import backend.config_cache as cfg_cache
import backend.config_tmdb as cfg_tmdb


def test_clean_env_raw():
    assert cfg._clean_env_raw(None) is None
    assert cfg._clean_env_raw("  ") is None
    assert cfg._clean_env_raw("''") is None
    assert cfg._clean_env_raw("'value'") == "value"
    assert cfg._clean_env_raw('"value"') == "value"
    assert cfg._clean_env_raw("  value ") == "value"


def test_get_env_parsers(monkeypatch):
    monkeypatch.delenv("TEST_STR", raising=False)
    assert cfg._get_env_str("TEST_STR", "default") == "default"

    monkeypatch.setenv("TEST_STR", "  hello ")
    assert cfg._get_env_str("TEST_STR", "default") == "hello"

    monkeypatch.setenv("TEST_INT", "10")
    assert cfg._get_env_int("TEST_INT", 1) == 10
    monkeypatch.setenv("TEST_INT", "bad")
    assert cfg._get_env_int("TEST_INT", 1) == 1

    monkeypatch.setenv("TEST_FLOAT", "3.5")
    assert cfg._get_env_float("TEST_FLOAT", 1.0) == 3.5
    monkeypatch.setenv("TEST_FLOAT", "bad")
    assert cfg._get_env_float("TEST_FLOAT", 1.0) == 1.0

    monkeypatch.setenv("TEST_BOOL", "yes")
    assert cfg._get_env_bool("TEST_BOOL", False) is True
    monkeypatch.setenv("TEST_BOOL", "no")
    assert cfg._get_env_bool("TEST_BOOL", True) is False
    monkeypatch.setenv("TEST_BOOL", "maybe")
    assert cfg._get_env_bool("TEST_BOOL", True) is True


def test_invalid_number_warns(monkeypatch):
    warnings = []
    monkeypatch.setattr(cfg._logger, "warning", lambda msg, *a, **k: warnings.append(msg))
    monkeypatch.setenv("TEST_INT", "ten")

    assert cfg._get_env_int("TEST_INT", 3) == 3
    assert "TEST_INT" in warnings[0] and "int" in warnings[0]


def test_caps():
    assert cfg._cap_int("CAP", 1, min_v=3, max_v=5) == 3
    assert cfg._cap_int("CAP", 10, min_v=3, max_v=5) == 5
    assert cfg._cap_int("CAP", 4, min_v=3, max_v=5) == 4

    assert cfg._cap_float_min("CAPF", 0.1, min_v=0.5) == 0.5
    assert cfg._cap_float_min("CAPF", 0.6, min_v=0.5) == 0.6


def test_ranged_readers(monkeypatch):
    monkeypatch.setenv("TEST_CONCURRENCY", "500")
    assert cfg._get_env_int_in_range("TEST_CONCURRENCY", 8, min_v=1, max_v=64) == 64
    monkeypatch.delenv("TEST_CONCURRENCY")
    assert cfg._get_env_int_in_range("TEST_CONCURRENCY", 8, min_v=1, max_v=64) == 8

    monkeypatch.setenv("TEST_TIMEOUT", "0.01")
    assert cfg._get_env_float_at_least("TEST_TIMEOUT", 10.0, min_v=0.5) == 0.5


def test_resolve_path(tmp_path):
    assert cfg._resolve_path("data", base=tmp_path) == tmp_path / "data"
    assert cfg._resolve_path(str(tmp_path / "abs"), base=tmp_path / "x") == tmp_path / "abs"


def test_mask_secret():
    assert cfg._mask_secret(None) == "<unset>"
    assert cfg._mask_secret("short") == "***"
    masked = cfg._mask_secret("eyJhbGciOiJIUzI1NiJ9.secret")
    assert masked.startswith("eyJh")
    assert "secret" not in masked


def test_cache_and_tmdb_constants():
    assert cfg_cache.CACHE_MAX_TOTAL_PAGES == 500
    assert cfg_cache.CACHE_MAX_STORED_PAGE == 2**31 - 1
    assert cfg_cache.CACHE_BROAD_MAX_AGE_SECONDS >= 1
    assert cfg_cache.CACHE_FILTERED_MAX_AGE_SECONDS >= cfg_cache.CACHE_BROAD_MAX_AGE_SECONDS
    assert cfg_cache.DATABASE_URL
    assert cfg_tmdb.TMDB_MAX_PAGE == 500
    assert cfg_tmdb.TMDB_BASE_URL.startswith("http")
