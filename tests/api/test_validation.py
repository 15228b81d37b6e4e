import pytest

from api.validation import GenerateRequest, InputRequest, parse_request
from models.chain.errors import ValidationError


def test_input_request_accepts_text():
    assert parse_request(InputRequest, {"input": "the cat"}).input == "the cat"


def test_missing_input_names_field():
    with pytest.raises(ValidationError, match="^input: "):
        parse_request(InputRequest, {})


def test_number_is_not_coerced_to_text():
    with pytest.raises(ValidationError, match="^input: "):
        parse_request(InputRequest, {"input": 12})


@pytest.mark.parametrize("payload", [None, [], "text"])
def test_non_object_body(payload):
    with pytest.raises(ValidationError, match="^body: "):
        parse_request(InputRequest, payload)


def test_generate_defaults():
    body = parse_request(GenerateRequest, {})
    assert body.start is None
    assert body.max_length is None


def test_generate_bounds_are_inclusive():
    body = parse_request(GenerateRequest, {"start": "x" * 2000, "max_length": 2000})
    assert body.max_length == 2000
    assert parse_request(GenerateRequest, {"max_length": 1}).max_length == 1


@pytest.mark.parametrize("value", [True, "10", 1.0, 0, 2001])
def test_max_length_is_a_strict_bounded_integer(value):
    with pytest.raises(ValidationError, match="^max_length: "):
        parse_request(GenerateRequest, {"max_length": value})


def test_original_error_is_chained():
    with pytest.raises(ValidationError) as excinfo:
        parse_request(GenerateRequest, {"start": ""})
    assert excinfo.value.__cause__ is not None
