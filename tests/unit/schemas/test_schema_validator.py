import pytest

from buildpair.schemas.validator import available_schemas, get_schema, validate_data


def test_packaged_schemas() -> None:
    """All three schemas ship as package data."""
    assert available_schemas() == ("config", "manifest", "security_rules")


def test_get_schema_accepts_suffix() -> None:
    """Schema names may include the file suffix."""
    assert get_schema("manifest.schema.json")["title"] == "Build manifest"


def test_unknown_schema() -> None:
    """Unknown schema names raise KeyError."""
    with pytest.raises(KeyError):
        get_schema("nope")


def test_validation_messages_carry_paths() -> None:
    """Error messages are prefixed with the dotted data path."""
    errors = validate_data({"packages": [{"name": "foo", "version": "1", "release": "1", "files": "x"}]}, "manifest")
    assert errors == ["packages.0.files: 'x' is not of type 'array'"]
