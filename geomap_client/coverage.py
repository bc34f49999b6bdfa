"""
Street View coverage levels and stable country ids for map features.

Several features in the world map can share a name across data versions, so a
note is keyed by ``<iso_a3>-<feature index>`` rather than the country name.
"""
import copy

FULL = "full"
LIMITED = "limited"
NONE = "none"

FULLY_COVERED = frozenset([
    "Albania", "Andorra", "Argentina", "Australia", "Austria", "Bangladesh",
    "Belgium", "Bhutan", "Bolivia", "Botswana", "Brazil", "Bulgaria",
    "Cambodia", "Canada", "Chile", "Colombia", "Croatia", "Czechia",
    "Denmark", "Dominican Rep.", "Ecuador", "Estonia", "eSwatini",
    "Finland", "France", "Germany", "Ghana", "Greece", "Greenland",
    "Guatemala", "Hungary", "Iceland", "Indonesia", "Ireland", "Israel",
    "Italy", "Japan", "Jordan", "Kenya", "Kazakhstan", "Kyrgyzstan", "Latvia", "Lesotho",
    "Lithuania", "Luxembourg", "Malaysia", "Madagascar", "Mexico", "Mongolia", "Montenegro",
    "Netherlands", "New Zealand", "Nigeria", "North Macedonia", "Norway",
    "Palestine", "Panama", "Peru", "Philippines", "Poland", "Portugal",
    "Romania", "Russia", "Senegal", "Serbia", "Singapore", "Slovakia",
    "Slovenia", "South Africa", "South Korea", "Spain", "Sri Lanka",
    "Sweden", "Switzerland", "Taiwan", "Thailand", "Turkey", "Ukraine",
    "United Arab Emirates", "United Kingdom", "United States of America", "Uruguay", "Guam",
    "Northern Mariana Islands", "India", "Laos", "Hong Kong", "American Samoa", "Qatar", "Oman",
])

LIMITED_COVERAGE = frozenset([
    "Egypt", "Pakistan", "China", "Dominican Rep.", "Nepal", "Rwanda", "Vietnam",
    "Uganda", "Bermuda", "Puerto Rico", "Faeroe Is.", "Greenland", "Vanuatu", "Iraq",
    "Afghanistan", "Tanzania", "Belarus", "Costa Rica", "Christmas & Cocos (Keeling) Islands",
])


# PUBLIC_INTERFACE
def coverage_for(name: str) -> str:
    """Coverage level for a country name. Full coverage wins over limited."""
    if name in FULLY_COVERED:
        return FULL
    if name in LIMITED_COVERAGE:
        return LIMITED
    return NONE


# PUBLIC_INTERFACE
def feature_id(feature: dict, index: int) -> str:
    """Stable country id for the ``index``-th feature of the map."""
    return f"{feature.get('properties', {}).get('iso_a3')}-{index}"


# PUBLIC_INTERFACE
def annotate_features(collection: dict) -> dict:
    """
    Return a copy of a GeoJSON FeatureCollection with every feature's ``id``
    and ``properties.coverage`` filled in. The input is not modified.
    """
    result = copy.deepcopy(collection)
    for index, feature in enumerate(result.get("features", [])):
        properties = feature.setdefault("properties", {})
        feature["id"] = feature_id(feature, index)
        properties["coverage"] = coverage_for(properties.get("name"))
    return result


def is_selectable(feature: dict) -> bool:
    """Countries without coverage cannot be selected or annotated."""
    return feature.get("properties", {}).get("coverage", NONE) != NONE
