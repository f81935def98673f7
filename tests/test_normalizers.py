import json
import os
import tempfile

import pytest

from app.models.normalized import MappingEntry, NormalizedProviderDataset
from app.models.providers import ImportProviderId
from app.services.importing.errors import ConfigurationError, ImportValidationError, UnknownProviderError
from app.services.importing.normalizers import get_normalizer, load_provider_file, mapping_to_dataset
from app.services.importing.providers import get_provider

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")


def fixture(name):
    return os.path.join(FIXTURES, name)


def test_c3teachers_keeps_module_and_lesson_buckets():
    result = load_provider_file("c3teachers", fixture("c3teachers_raw.json"))
    assert result.format == "dataset"
    dataset = result.payload
    assert isinstance(dataset, NormalizedProviderDataset)
    assert dataset.generated_at == "2024-05-01T00:00:00Z"
    # inquiry without a slug is skipped; legacy `module` key still resolves
    assert [m.module_slug for m in dataset.modules] == ["civics-1", "history-2"]

    civics = dataset.modules[0]
    assert civics.grade_band == "6-8"
    assert [a.url for a in civics.assets] == ["https://c3teachers.org/inquiries/vote/"]
    overview = civics.assets[0]
    assert overview.kind == "document"
    assert overview.tags == ["civics"]
    assert overview.metadata.provider == "c3teachers"
    assert overview.metadata.source_type == "Document"

    # the lesson with no usable resources is dropped
    assert [l.slug for l in civics.lessons] == ["supporting-question-1"]
    first, second = civics.lessons[0].assets
    assert first.kind == "activity"
    assert first.license == "CC BY-NC-SA 4.0"
    assert second.kind == "video"
    assert second.license == "CC BY 4.0"


def test_c3teachers_limit_counts_raw_groups():
    result = load_provider_file(ImportProviderId.C3TEACHERS, fixture("c3teachers_raw.json"), limit=2)
    # second raw group has no slug, so two groups yield one module
    assert [m.module_slug for m in result.payload.modules] == ["civics-1"]


def test_siyavula_practice_then_reference():
    dataset = load_provider_file("siyavula", fixture("siyavula_raw.json")).payload
    algebra = dataset.modules[0]
    assert [(a.kind, a.url) for a in algebra.assets] == [
        ("practice", "https://siyavula.com/practice/linear-1"),
        ("reference", "https://siyavula.com/read/linear"),
    ]
    assert algebra.assets[0].metadata.difficulty == 0.4
    assert all(a.license == "CC BY 4.0" for a in algebra.assets)
    assert algebra.lessons == []

    limited = load_provider_file("siyavula", fixture("siyavula_raw.json"), limit=1).payload
    assert len(limited.modules) == 1


def test_nasa_noaa_media_defaults_and_summary():
    dataset = load_provider_file("nasa_noaa", fixture("nasa_noaa_raw.json")).payload
    assert [m.module_slug for m in dataset.modules] == ["earth-science-1"]
    module = dataset.modules[0]
    assert module.metadata == {"summary": "Satellite imagery of Atlantic storms."}
    image, video = module.assets
    assert image.kind == "image"
    assert image.metadata.credit == "NASA/GOES"
    assert video.kind == "media"
    assert video.license == "Public Domain"


def test_openstax_produces_mapping():
    result = load_provider_file("openstax", fixture("openstax_raw.json"))
    assert result.format == "mapping"
    mapping = result.payload
    assert sorted(mapping) == ["algebra-1", "geometry"]
    urls = [e.url for e in mapping["algebra-1"]]
    assert urls == [
        "https://openstax.org/books/algebra/1-1",
        "https://openstax.org/books/algebra/1-2",
        "https://openstax.org/resources/algebra-slides",
    ]
    assert mapping["algebra-1"][0].lesson_slug == "intro"
    assert mapping["algebra-1"][2].lesson_title == "Introduction"
    assert len(mapping["geometry"]) == 1

    limited = load_provider_file("openstax", fixture("openstax_raw.json"), limit=1).payload
    assert list(limited) == ["algebra-1"]
    assert len(limited["algebra-1"]) == 1


def test_mapping_only_providers_have_no_raw_normalizer():
    for provider in ("gutenberg", "federal"):
        with pytest.raises(ConfigurationError):
            get_normalizer(provider)


def test_unknown_provider_is_rejected():
    with pytest.raises(UnknownProviderError):
        get_normalizer("khan")


def test_invalid_json_raises_validation_error():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "broken.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write("{not json")
        with pytest.raises(ImportValidationError):
            load_provider_file("siyavula", path)


def test_payload_serializes_with_camel_case_keys():
    result = load_provider_file("c3teachers", fixture("c3teachers_raw.json"), limit=1)
    data = json.loads(json.dumps(result.to_json_payload()))
    assert data["provider"] == "c3teachers"
    assert data["modules"][0]["moduleSlug"] == "civics-1"
    assert data["modules"][0]["gradeBand"] == "6-8"
    # round-trips into the model the pipeline validates
    assert NormalizedProviderDataset.model_validate(data).modules[0].lessons[0].slug == "supporting-question-1"


def test_mapping_to_dataset_accepts_urls_and_entries():
    mapping = {
        "algebra-1": [
            "https://openstax.org/books/algebra/1-1",
            {"url": "https://openstax.org/x", "lessonSlug": "intro", "kind": "Video", "chapter": "1"},
            {"title": "no url"},
        ],
        " ": ["https://ignored.example"],
    }
    dataset = mapping_to_dataset(ImportProviderId.OPENSTAX, mapping)
    assert [m.module_slug for m in dataset.modules] == ["algebra-1"]
    plain, entry = dataset.modules[0].assets
    assert plain.kind == "link"
    assert plain.metadata.provider == "openstax"
    assert entry.kind == "Video"
    assert entry.lesson_slug == "intro"
    assert entry.metadata.model_dump()["chapter"] == "1"


def test_mapping_to_dataset_accepts_parsed_entries():
    dataset = mapping_to_dataset(ImportProviderId.GUTENBERG, {"lit-1": [MappingEntry(url="https://gutenberg.org/1")]})
    assert dataset.provider == ImportProviderId.GUTENBERG
    assert dataset.modules[0].assets[0].metadata.provider == "gutenberg"


def test_sample_mappings_convert():
    root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    for provider in (ImportProviderId.GUTENBERG, ImportProviderId.FEDERAL):
        path = os.path.join(root, get_provider(provider).sample_path)
        with open(path, "r", encoding="utf-8") as f:
            dataset = mapping_to_dataset(provider, json.load(f))
        assert dataset.modules
        assert all(a.metadata.provider == provider.value for m in dataset.modules for a in m.assets)


def test_bad_optional_values_do_not_sink_the_file():
    raw = {
        "generatedAt": 20240601,
        "topics": [
            {
                "moduleSlug": "algebra-1",
                "title": ["not", "a", "title"],
                "practiceSets": [
                    {"url": "https://siyavula.com/practice/linear-1", "difficulty": "medium"},
                    {"url": "https://siyavula.com/practice/linear-2", "difficulty": "0.7", "title": 42},
                    "stray string",
                ],
            },
            {"moduleSlug": "algebra-2", "references": {"url": "https://siyavula.com/read/quadratics"}},
        ],
    }
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "siyavula.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(raw, f)
        dataset = load_provider_file("siyavula", path).payload

    assert [m.module_slug for m in dataset.modules] == ["algebra-1", "algebra-2"]
    algebra = dataset.modules[0]
    assert algebra.title is None
    first, second = algebra.assets
    assert first.metadata.difficulty is None
    assert second.metadata.difficulty == 0.7
    assert second.title == "42"
    assert dataset.modules[1].assets == []
