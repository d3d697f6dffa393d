"""
Translation cache-aside tests.
"""

import pytest

from conftest import CountingTranslator, run
from icp_platform.core.errors import NotFoundError, SchemaValidationError
from icp_platform.core.schema import PARTNERS, SOLUTIONS, LocalizedView
from icp_platform.core.translation import TranslationService, needs_translation, translatable_fields


@pytest.fixture
def solution(store):
    return run(store.create(SOLUTIONS, {
        "name": "Water Filter",
        "summary": "Clean water",
        "detail": "Ceramic",
        "domain": "Water",
        "status": "MATURE",
    }))


def test_localized_view_shape():
    view = LocalizedView(base={"id": "1", "name": "A", "summary": "S"}, overrides={"name": "Á"}, language="es")
    assert view.to_dict() == {
        "id": "1", "name": "Á", "summary": "S",
        "original": {"id": "1", "name": "A", "summary": "S"},
    }


def test_needs_translation():
    assert needs_translation("fr")
    assert not needs_translation("en")
    assert not needs_translation("EN")
    assert not needs_translation(None)
    assert not needs_translation("")


def test_translatable_fields_omit_absent_values():
    entity = {"name": "A", "summary": "", "detail": None, "benefit": "B", "domain": "Water"}
    assert translatable_fields(SOLUTIONS, entity) == {"name": "A", "benefit": "B"}
    assert translatable_fields(PARTNERS, {"organizationName": "Org", "description": "D"}) == {"organizationName": "Org"}


def test_provider_called_once_per_entity_and_language(store, solution):
    provider = CountingTranslator()
    service = TranslationService(store, provider)

    first = run(service.get_translated_entity(solution["id"], "solution", "fr"))
    second = run(service.get_translated_entity(solution["id"], "solution", "fr"))

    assert provider.calls == 1
    assert first["summary"] == "[fr] Clean water"
    assert second["summary"] == "[fr] Clean water"
    assert second["original"]["summary"] == "Clean water"
    assert second["domain"] == "Water"

    stored = run(store.get(SOLUTIONS, solution["id"]))
    assert stored["translations"]["fr"]["name"] == "[fr] Water Filter"
    # Stored display fields stay in English
    assert stored["summary"] == "Clean water"


def test_languages_are_cached_independently(store, solution):
    provider = CountingTranslator()
    service = TranslationService(store, provider)

    run(service.get_translated_entity(solution["id"], "solution", "fr"))
    run(service.get_translated_entity(solution["id"], "solution", "es"))

    stored = run(store.get(SOLUTIONS, solution["id"]))
    assert set(stored["translations"]) == {"fr", "es"}
    assert provider.calls == 2


def test_english_bypasses_provider(store, solution):
    provider = CountingTranslator()
    service = TranslationService(store, provider)

    result = run(service.get_translated_entity(solution["id"], "solution", "en"))

    assert result == solution
    assert provider.calls == 0


def test_missing_entity_raises_not_found(store):
    service = TranslationService(store, CountingTranslator())
    with pytest.raises(NotFoundError):
        run(service.get_translated_entity("missing", "solution", "fr"))


def test_untranslatable_kind_is_rejected(store):
    service = TranslationService(store, CountingTranslator())
    with pytest.raises(SchemaValidationError):
        run(service.get_translated_entity("x", "ticket", "fr"))


def test_no_translatable_fields_skips_provider(store):
    provider = CountingTranslator()
    service = TranslationService(store, provider)

    result = run(service.ensure_translation({"id": "p1", "entityType": "NGO"}, "partner", "fr"))

    assert provider.calls == 0
    assert result["original"] == {"id": "p1", "entityType": "NGO"}


def test_snapshot_without_id_is_translated_but_not_persisted(store):
    provider = CountingTranslator()
    service = TranslationService(store, provider)

    result = run(service.ensure_translation({"name": "Draft"}, "solution", "de"))

    assert result["name"] == "[de] Draft"
    assert run(store.list(SOLUTIONS)) == []


def test_provider_failure_degrades_and_is_not_cached(store, solution):
    service = TranslationService(store, CountingTranslator(fail=True))

    result = run(service.get_translated_entity(solution["id"], "solution", "fr"))

    assert result["summary"] == "Clean water"
    assert "translations" not in run(store.get(SOLUTIONS, solution["id"]))

    # Next request retries the provider
    recovered = CountingTranslator()
    service.provider = recovered
    run(service.get_translated_entity(solution["id"], "solution", "fr"))
    assert recovered.calls == 1


def test_provider_output_restricted_to_requested_keys(store, solution):
    provider = CountingTranslator(extra={"status": "APPROVED", "detail": 42})
    service = TranslationService(store, provider)

    result = run(service.get_translated_entity(solution["id"], "solution", "fr"))

    assert result["status"] == "MATURE"
    assert result["detail"] == "Ceramic"
    assert set(run(store.get(SOLUTIONS, solution["id"]))["translations"]["fr"]) == {"name", "summary"}


def test_disabled_provider_returns_base_fields(store, solution):
    service = TranslationService(store, None)
    result = run(service.get_translated_entity(solution["id"], "solution", "fr"))
    assert result["name"] == "Water Filter"


def test_ensure_translations_preserves_order(store):
    provider = CountingTranslator()
    service = TranslationService(store, provider)
    docs = [run(store.create(PARTNERS, {"organizationName": f"Org {i}"})) for i in range(4)]

    results = run(service.ensure_translations(docs, "partner", "pt"))

    assert [r["organizationName"] for r in results] == [f"[pt] Org {i}" for i in range(4)]
    assert provider.calls == 4
    assert run(service.ensure_translations(docs, "partner", "en")) == docs


def test_partner_translation_sends_only_organization_name(store):
    provider = CountingTranslator()
    service = TranslationService(store, provider)
    partner = run(store.create(PARTNERS, {
        "organizationName": "Rain Collective", "description": "Community rain water harvesting",
    }))

    localized = run(service.ensure_translation(partner, "partner", "sw"))

    assert provider.requests == [({"organizationName": "Rain Collective"}, "sw")]
    assert localized["organizationName"] == "[sw] Rain Collective"
    assert localized["description"] == "Community rain water harvesting"
