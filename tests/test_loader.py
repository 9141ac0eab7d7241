from signage_takeoff.loader import (
    image_to_data_url,
    load_bounding_box,
    load_item,
    load_key_page_candidates,
    load_result,
    load_type_definition,
    result_to_dict,
)
from signage_takeoff.models import ExtractionResult, KeyPageCategory, Provenance


def test_item_defaults_and_coercion():
    item = load_item({
        "sheet": "A-101",
        "roomName": None,
        "signType": "A1",
        "quantity": "3",
        "isADA": "true",
        "dataSource": "rule",
    })
    assert item.room_name == ""
    assert item.room_number == ""
    assert item.quantity == 3
    assert item.is_ada is True
    assert item.provenance is Provenance.FROM_RULE
    assert item.page_number is None


def test_missing_or_unknown_provenance_is_visual_scan():
    assert load_item({}).provenance is Provenance.FROM_VISUAL_SCAN
    assert load_item({"dataSource": "Guess"}).provenance is Provenance.FROM_VISUAL_SCAN


def test_quantity_bounds():
    assert load_item({"quantity": -2}).quantity == 0
    assert load_item({"quantity": "many"}).quantity == 1
    assert load_item({"quantity": 2.0}).quantity == 2


def test_snake_case_keys_are_accepted():
    item = load_item({"room_number": "204", "sign_type": "B2", "bounding_box": [1, 2, 3, 4], "page_number": 5})
    assert item.room_number == "204"
    assert item.sign_type == "B2"
    assert item.bounding_box == [1.0, 2.0, 3.0, 4.0]
    assert item.page_number == 5


def test_bounding_box_is_clamped_and_ordered():
    assert load_bounding_box([300, 1200, 100, -5]) == [100.0, 0.0, 300.0, 1000.0]
    assert load_bounding_box([1, 2, 3]) is None
    assert load_bounding_box([1, 2, "x", 4]) is None
    assert load_bounding_box(None) is None


def test_type_definition_keeps_optional_fields_optional():
    definition = load_type_definition({"typeCode": "A1", "category": "Room ID", "imageIndex": 2.0, "color": None})
    assert definition.image_index == 2
    assert definition.color is None
    assert definition.description == ""
    assert load_type_definition({"typeCode": "A1", "imageIndex": -1}).image_index is None


def test_load_result_tolerates_bad_shapes():
    assert load_result(None) == ExtractionResult()
    assert load_result([1, 2]) == ExtractionResult()
    result = load_result({"takeoff": [{"signType": "A1"}, "junk"], "catalog": "none"})
    assert [i.sign_type for i in result.takeoff] == ["A1"]
    assert result.catalog == []


def test_key_page_candidates():
    pages = load_key_page_candidates({"keyPages": [
        {"sheetNumber": "A-101", "description": "Plan", "category": "floor plan"},
        {"sheetNumber": "G-001", "category": "Cover"},
        {"description": "no sheet"},
    ]})
    assert [p.sheet_number for p in pages] == ["A-101", "G-001"]
    assert pages[0].category is KeyPageCategory.FLOOR_PLAN
    assert pages[1].category is KeyPageCategory.GENERAL
    assert load_key_page_candidates("nope") == []


def test_result_to_dict_uses_wire_names():
    result = load_result({"takeoff": [{"sheet": "A-101", "signType": "A1", "dataSource": "Schedule"}],
                          "catalog": [{"typeCode": "A1"}]})
    result.catalog[0].design_image = b"\xff\xd8jpeg"
    data = result_to_dict(result)
    row = data["takeoff"][0]
    assert row["signType"] == "A1"
    assert row["dataSource"] == "Schedule"
    assert "boundingBox" not in row
    assert data["catalog"][0]["designImage"].startswith("data:image/jpeg;base64,")


def test_image_to_data_url_empty():
    assert image_to_data_url(None) is None
    assert image_to_data_url(b"") is None
