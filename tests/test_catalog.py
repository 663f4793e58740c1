"""Tests for the provider catalog loader."""

import json

import pytest

from gmail_subscription_tracker.catalog import InferenceConfig, ProviderCatalog, load_catalog
from gmail_subscription_tracker.errors import CatalogError
from gmail_subscription_tracker.models import ProviderEntry


def test_default_catalog_loads():
    catalog = load_catalog()
    assert len(catalog) > 10
    assert catalog.get("netflix") == ProviderEntry(name="Netflix", tag="streaming")


def test_load_custom_catalog(tmp_path):
    path = tmp_path / "providers.json"
    path.write_text(json.dumps([{"name": "Acme Cloud", "tag": "storage"}, {"name": "Widgets"}]))

    catalog = load_catalog(path)

    assert list(catalog) == [
        ProviderEntry(name="Acme Cloud", tag="storage"),
        ProviderEntry(name="Widgets", tag="other"),
    ]


def test_missing_catalog_is_fatal(tmp_path):
    with pytest.raises(CatalogError, match="not found"):
        load_catalog(tmp_path / "nope.json")


@pytest.mark.parametrize(
    "content",
    ["{not json", json.dumps({"name": "Netflix"}), json.dumps([]), json.dumps([{"tag": "music"}])],
)
def test_malformed_catalog_is_fatal(tmp_path, content):
    path = tmp_path / "providers.json"
    path.write_text(content)
    with pytest.raises(CatalogError):
        load_catalog(path)


def test_match_is_case_insensitive_and_ordered():
    catalog = ProviderCatalog(
        [ProviderEntry("Apple Music", "music"), ProviderEntry("Apple", "hardware")]
    )
    assert catalog.match("Your APPLE MUSIC receipt").name == "Apple Music"
    assert catalog.match("apple store").name == "Apple"
    assert catalog.match("") is None


def test_inference_config_defaults():
    config = InferenceConfig()
    assert config.currency_codes == {"USD", "NGN", "EUR", "GBP"}
    assert [p.code for p in config.currency_patterns] == ["USD", "NGN", "EUR", "GBP"]
    assert config.billing_cycle_days == 30
    assert config.require_amount is True
