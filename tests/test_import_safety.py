from app.models.normalized import NormalizedProviderDataset
from app.services.importing.safety import count_dataset_items, evaluate_import_limits, normalize_import_limits


def test_normalize_limits_drops_invalid_values():
    assert normalize_import_limits({"maxAssets": "25", "maxModules": -4}) == {"maxAssets": 25}
    assert normalize_import_limits({"maxModules": 3.9, "other": 5}) == {"maxModules": 3}
    assert normalize_import_limits({"maxModules": "lots", "maxAssets": True}) == {}
    assert normalize_import_limits(None) == {}


def test_evaluate_limits_reports_each_breach():
    result = evaluate_import_limits({"modules": 3, "assets": 12}, {"maxModules": 2, "maxAssets": 10})
    assert len(result.errors) == 2
    assert all("exceeds the limit" in e for e in result.errors)
    assert "modules count 3 exceeds the limit 2" in result.errors


def test_evaluate_limits_within_caps():
    result = evaluate_import_limits({"modules": 2, "assets": 10}, {"maxModules": 2, "maxAssets": 10})
    assert result.errors == []
    assert result.warnings == []


def test_evaluate_limits_warns_on_large_volume_without_caps():
    result = evaluate_import_limits({"modules": 1, "assets": 6000}, {})
    assert result.errors == []
    assert len(result.warnings) == 1
    assert "assets" in result.warnings[0]


def test_count_dataset_items_includes_lesson_assets():
    dataset = NormalizedProviderDataset.model_validate(
        {
            "provider": "c3teachers",
            "modules": [
                {
                    "moduleSlug": "m1",
                    "assets": [{"url": "https://a/1"}, {"url": "https://a/2"}],
                    "lessons": [{"slug": "l1", "assets": [{"url": "https://a/3"}]}],
                },
                {
                    "moduleSlug": "m2",
                    "lessons": [{"slug": "l2", "assets": [{"url": "https://b/2"}, {"url": "https://b/3"}]}],
                },
            ],
        }
    )
    assert count_dataset_items(dataset) == {"modules": 2, "assets": 5}
