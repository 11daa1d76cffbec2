from gasbora.schemas.listing import CylinderSize
from gasbora.services.validation import validate_listing

from conftest import VALID_INPUT


def test_short_title_is_rejected():
    result = validate_listing({"title": "ab", "price": 100, "quantity": 1,
                               "cylinder_size": "6kg", "is_refill": False})
    assert not result.ok
    assert result.errors == {"title": "Title must be at least 3 characters"}


def test_negative_price_is_rejected():
    result = validate_listing({"title": "6kg Cylinder", "price": -5, "quantity": 1,
                               "cylinder_size": "6kg", "is_refill": False})
    assert not result.ok
    assert result.errors == {"price": "Price must be greater than 0"}


def test_valid_input_is_normalized():
    raw = dict(VALID_INPUT, title="  6kg K-Gas Cylinder  ", brand="   ", location="")
    result = validate_listing(raw)
    assert result.ok
    value = result.value
    assert value.title == "6kg K-Gas Cylinder"
    assert value.brand is None
    assert value.location is None
    assert value.price == 1200.0
    assert value.quantity == 2
    assert value.cylinder_size == CylinderSize.KG6


def test_title_is_checked_after_trimming():
    result = validate_listing(dict(VALID_INPUT, title="   ab   "))
    assert result.errors["title"] == "Title must be at least 3 characters"


def test_length_limits():
    result = validate_listing(dict(
        VALID_INPUT,
        title="x" * 101,
        description="d" * 501,
        brand="b" * 51,
        location="l" * 101,
    ))
    assert result.errors == {
        "title": "Title must be less than 100 characters",
        "description": "Description must be less than 500 characters",
        "brand": "Brand must be less than 50 characters",
        "location": "Location must be less than 100 characters",
    }


def test_unknown_cylinder_size_is_a_field_error():
    result = validate_listing(dict(VALID_INPUT, cylinder_size="22.5kg"))
    assert result.errors == {"cylinder_size": "Please select a cylinder size"}


def test_non_numeric_price_and_quantity():
    result = validate_listing(dict(VALID_INPUT, price="cheap", quantity="many"))
    assert result.errors == {
        "price": "Price must be a number",
        "quantity": "Quantity must be a whole number",
    }


def test_price_upper_bound():
    assert validate_listing(dict(VALID_INPUT, price="1000000")).ok
    result = validate_listing(dict(VALID_INPUT, price="1000000.01"))
    assert result.errors == {"price": "Price is too high"}


def test_quantity_bounds():
    assert validate_listing(dict(VALID_INPUT, quantity="0")).errors == {"quantity": "Quantity must be at least 1"}
    assert validate_listing(dict(VALID_INPUT, quantity=1001)).errors == {"quantity": "Quantity is too high"}
    assert validate_listing(dict(VALID_INPUT, quantity="2.5")).errors == {"quantity": "Quantity must be a whole number"}


def test_blank_quantity_defaults_to_one():
    result = validate_listing(dict(VALID_INPUT, quantity=""))
    assert result.ok and result.value.quantity == 1


def test_missing_fields_each_get_their_own_message():
    result = validate_listing({})
    assert result.errors == {
        "title": "Title must be at least 3 characters",
        "cylinder_size": "Please select a cylinder size",
        "price": "Price must be a number",
    }


def test_one_message_per_field():
    # empty title breaks min length only; no second message is added
    result = validate_listing(dict(VALID_INPUT, title=""))
    assert list(result.errors) == ["title"]
    assert isinstance(result.errors["title"], str)


def test_refill_flag_coercion():
    assert validate_listing(dict(VALID_INPUT, is_refill="true")).value.is_refill is True
    assert validate_listing(dict(VALID_INPUT, is_refill="on")).value.is_refill is True
    assert validate_listing(dict(VALID_INPUT, is_refill="")).value.is_refill is False


def test_validation_is_idempotent():
    first = validate_listing(VALID_INPUT).value
    second = validate_listing(first.model_dump()).value
    assert first == second
