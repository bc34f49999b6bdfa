from geomap_client.coverage import FULL, LIMITED, NONE, annotate_features, coverage_for, feature_id, is_selectable


def test_coverage_levels():
    assert coverage_for("France") == FULL
    assert coverage_for("Egypt") == LIMITED
    assert coverage_for("Chad") == NONE
    # listed in both sets
    assert coverage_for("Greenland") == FULL

def test_feature_id_distinguishes_same_name():
    a = {"properties": {"name": "France", "iso_a3": "FRA"}}
    assert feature_id(a, 12) == "FRA-12"
    assert feature_id(a, 13) == "FRA-13"

def test_annotate_features():
    collection = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"name": "France", "iso_a3": "FRA"}},
            {"type": "Feature", "properties": {"name": "Chad", "iso_a3": "TCD"}},
        ],
    }
    result = annotate_features(collection)
    assert [f["id"] for f in result["features"]] == ["FRA-0", "TCD-1"]
    assert [f["properties"]["coverage"] for f in result["features"]] == [FULL, NONE]
    assert is_selectable(result["features"][0])
    assert not is_selectable(result["features"][1])
    # input untouched
    assert "id" not in collection["features"][0]
