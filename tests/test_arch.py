from pytest_archon import archrule


def test_encoders_do_not_import_collections() -> None:
    (
        archrule("encoders-are-standalone")
        .match("libdigest.encoders*")
        .should_not_import("libdigest.collection*", "libdigest.storage*")
        .check("libdigest", only_direct_imports=True)
    )


def test_storage_does_not_import_collections() -> None:
    (
        archrule("storage-is-format-agnostic")
        .match("libdigest.storage")
        .should_not_import("libdigest.collection*", "libdigest.record*")
        .check("libdigest", only_direct_imports=True)
    )
