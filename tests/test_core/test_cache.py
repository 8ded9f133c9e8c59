import io
import json

import pandas as pd
import pytest

from molcache.core.cache import CompoundCache
from molcache.core.key import SerCompound
from molcache.core.record import CompoundProperties
from molcache.core.serialization import DeserializationError


@pytest.fixture
def water():
    return SerCompound.with_name("water")


@pytest.fixture
def co2():
    return SerCompound.with_name("Carbon Dioxide")


@pytest.fixture
def water_record():
    return CompoundProperties(cid=962, molecular_formula="H2O", title="Water", xlogp=-0.5)


@pytest.fixture
def co2_record():
    return CompoundProperties(cid=280, molecular_formula="CO2", title="Carbon Dioxide", tpsa=34.1)


@pytest.fixture
def filled_cache(water, co2, water_record, co2_record):
    cache = CompoundCache()
    cache.insert(water, water_record)
    cache.insert(co2, co2_record)
    return cache


def test_cache_initialization():
    """Test cache initialization."""
    cache = CompoundCache()
    assert len(cache) == 0
    assert cache.is_empty()


def test_cache_miss(water):
    """A miss returns None and does not mutate the cache."""
    cache = CompoundCache()
    assert cache.get(water) is None
    assert water not in cache
    assert len(cache) == 0


def test_cache_storage_and_retrieval(water, water_record):
    cache = CompoundCache()
    assert cache.insert(water, water_record) is None
    assert cache.get(water) == water_record
    assert cache.get(SerCompound.with_name("WATER")) == water_record
    assert len(cache) == 1
    assert not cache.is_empty()


def test_overwrite_returns_previous(water):
    """Inserting under an existing key replaces the record and returns the old one."""
    cache = CompoundCache()
    r1 = CompoundProperties(cid=962, title="Water")
    r2 = CompoundProperties(cid=962, title="Water", xlogp=-0.5)

    cache.insert(water, r1)
    previous = cache.insert(water, r2)

    assert previous == r1
    assert cache.get(water) == r2
    assert len(cache) == 1


def test_insert_mapping_is_validated(water):
    cache = CompoundCache()
    cache.insert(water, {"CID": 962, "Title": "Water"})
    assert cache.get(water) == CompoundProperties(cid=962, title="Water")


def test_insert_rejects_invalid_types(water):
    cache = CompoundCache()
    with pytest.raises(TypeError, match="Records must be CompoundProperties"):
        cache.insert(water, ["H2O"])
    with pytest.raises(TypeError, match="Cache keys must be SerCompound"):
        cache.insert("water", CompoundProperties(cid=962))
    assert cache.is_empty()


def test_remove(filled_cache, water, water_record):
    assert filled_cache.remove(water) == water_record
    assert filled_cache.get(water) is None
    assert len(filled_cache) == 1
    # removing again is a no-op
    assert filled_cache.remove(water) is None
    assert len(filled_cache) == 1


def test_keys_are_sorted(filled_cache, water, co2):
    assert filled_cache.keys() == [co2, water]
    assert list(filled_cache) == [co2, water]
    assert [k for k, _ in filled_cache.items()] == [co2, water]


def test_save_and_load_round_trip(tmp_path, filled_cache, water, co2, water_record, co2_record):
    """Saving then loading yields the same mapping."""
    path = tmp_path / "compounds.json"
    filled_cache.save(path)

    loaded = CompoundCache.load(path)
    assert len(loaded) == 2
    assert loaded.get(water) == water_record
    assert loaded.get(co2) == co2_record
    assert loaded.items() == filled_cache.items()


def test_save_and_load_streams(filled_cache):
    buffer = io.StringIO()
    filled_cache.save(buffer)
    buffer.seek(0)
    loaded = CompoundCache.load(buffer)
    assert loaded.items() == filled_cache.items()


def test_save_is_idempotent(tmp_path, filled_cache):
    """Saving an unchanged cache twice gives byte-identical files."""
    path = tmp_path / "compounds.json"
    filled_cache.save(path)
    first = path.read_bytes()
    filled_cache.save(path)
    assert path.read_bytes() == first


def test_save_independent_of_insertion_order(water, co2, water_record, co2_record):
    forward = CompoundCache()
    forward.insert(water, water_record)
    forward.insert(co2, co2_record)
    backward = CompoundCache()
    backward.insert(co2, co2_record)
    backward.insert(water, water_record)
    assert forward.serialize() == backward.serialize()


def test_save_writes_format_version(tmp_path, filled_cache):
    path = tmp_path / "compounds.json"
    filled_cache.save(path)
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["format_version"] == 1
    assert [e["identifier"] for e in document["cache"]] == ["carbon dioxide", "water"]


def test_load_nonexistent_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        CompoundCache.load(tmp_path / "missing.json")


def test_save_to_invalid_path(tmp_path, filled_cache):
    with pytest.raises(OSError):
        filled_cache.save(tmp_path / "missing_dir" / "compounds.json")


def test_load_does_not_merge(tmp_path, filled_cache, water):
    """load builds a new cache rather than merging into an existing one."""
    path = tmp_path / "compounds.json"
    CompoundCache().save(path)

    loaded = CompoundCache.load(path)
    assert loaded.is_empty()
    assert water in filled_cache


def test_load_invalid_data(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text('{"cache": [', encoding="utf-8")
    with pytest.raises(DeserializationError, match="Could not parse JSON"):
        CompoundCache.load(path)


def test_to_dataframe(filled_cache):
    df = filled_cache.to_dataframe()
    assert isinstance(df, pd.DataFrame)
    assert df.index.names == ["namespace", "identifier"]
    assert len(df) == 2
    assert df.loc[("name", "water"), "cid"] == 962
    assert df.loc[("name", "carbon dioxide"), "molecular_formula"] == "CO2"
    assert list(df.columns[:2]) == ["cid", "molecular_formula"]


def test_empty_dataframe():
    df = CompoundCache().to_dataframe()
    assert df.empty
    assert "cid" in df.columns


def test_get_returns_detached_record(water):
    """Mutating a returned record's unknown fields does not change the cache."""
    cache = CompoundCache()
    cache.insert(water, {"cid": 962, "synonyms": ["water"]})

    record = cache.get(water)
    record.model_extra["synonyms"].append("oxidane")
    record.model_extra["injected"] = 1

    assert cache.get(water).model_extra == {"synonyms": ["water"]}
    _, listed = cache.items()[0]
    listed.model_extra["synonyms"].clear()
    assert cache.get(water).model_extra == {"synonyms": ["water"]}


def test_insert_detaches_caller_record(water):
    synonyms = ["water"]
    record = CompoundProperties.model_validate({"cid": 962, "synonyms": synonyms})
    cache = CompoundCache()
    cache.insert(water, record)

    synonyms.append("oxidane")
    record.model_extra["synonyms"].append("dihydrogen monoxide")
    assert cache.get(water).model_extra == {"synonyms": ["water"]}
