import json

from backend.cache_key import canonical_fields, canonical_json, fingerprint
from backend.search_params import normalize


def test_fingerprint_is_sha256_hex():
    fp = fingerprint(normalize({"media_type": "movie"}))
    assert len(fp) == 64
    assert fp == fp.lower()
    int(fp, 16)


def test_equivalent_requests_share_fingerprint():
    a = normalize({"media_type": "movie", "genre_ids": "35,28", "page": "1"})
    b = normalize({"page": 1, "genre_ids": ["28", "35", "28"], "media_type": "movie"})
    assert fingerprint(a) == fingerprint(b)


def test_absent_and_empty_genres_are_equivalent():
    a = normalize({"media_type": "tv"})
    b = normalize({"media_type": "tv", "genre_ids": ""})
    assert fingerprint(a) == fingerprint(b)
    assert canonical_fields(a)["genre_ids"] is None


def test_fields_that_change_the_query_change_the_fingerprint():
    base = {"media_type": "movie"}
    fps = {
        fingerprint(normalize(base)),
        fingerprint(normalize({**base, "page": "2"})),
        fingerprint(normalize({**base, "sort_by": "title.asc"})),
        fingerprint(normalize({**base, "min_rating": "5"})),
        fingerprint(normalize({"media_type": "tv"})),
    }
    assert len(fps) == 5


def test_canonical_json_is_compact_and_sorted():
    text = canonical_json(normalize({"media_type": "movie", "genre_ids": "28"}))
    assert " " not in text
    keys = list(json.loads(text).keys())
    assert keys == sorted(keys)
    assert json.loads(text)["genre_ids"] == [28]
