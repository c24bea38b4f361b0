from skillmap.services.alias_resolver import AliasResolver
from skillmap.services.normalization_service import normalize_extracted_names
from tests.utils import make_competency


def test_names_are_deduplicated_and_mapped(store):
    react = make_competency(store, "React")
    store.register_alias(react.id, "react js")

    results = normalize_extracted_names(
        ["React.js", "  react-js ", "ReactJS", "Elm", "", "elm"],
        AliasResolver(store),
    )

    assert results == [
        {
            "name": "React.js",
            "normalized_name": "react js",
            "competency_id": react.id,
            "found_in_taxonomy": True,
        },
        {
            "name": "ReactJS",
            "normalized_name": "reactjs",
            "competency_id": react.id,
            "found_in_taxonomy": True,
        },
        {
            "name": "Elm",
            "normalized_name": "elm",
            "competency_id": None,
            "found_in_taxonomy": False,
        },
    ]


def test_normalization_never_creates_competencies(store):
    normalize_extracted_names(["Haskell"], AliasResolver(store))

    assert store.find_by_name("Haskell") is None
    assert store.search("haskell") == []
