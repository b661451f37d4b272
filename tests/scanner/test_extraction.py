from datetime import datetime, timezone

from modules.scanner.extraction import (
    DEFAULT_CATEGORY,
    DEFAULT_MANUFACTURER,
    ExtractedPart,
    extract_part_info,
    process_image,
)


def test_extracts_fields_from_free_text():
    text = "BOSCH\nBP-45821\nBrake pad set\n850.00 грн\nкатегорія товару: гальма"
    extracted = extract_part_info(text)
    assert extracted.value("article_number") == "BP-45821"
    assert extracted.value("manufacturer") == "BOSCH"
    assert extracted.value("name") == "Brake pad set"
    assert extracted.value("price") == 850.0
    assert extracted.value("category") == "гальма"
    assert extracted.article_number.line == "BP-45821"


def test_labeled_lines_win():
    text = "MANN\nOil filter\nАртикул: HU-7008Z\nАртикул: W712-75\nВиробник: Mann-Filter\nЦіна: 245,50"
    extracted = extract_part_info(text)
    assert extracted.value("article_number") == "HU-7008Z"
    assert extracted.value("manufacturer") == "Mann-Filter"
    assert extracted.value("price") == 245.5
    assert extracted.manufacturer.line == "Виробник: Mann-Filter"


def test_manufacturer_does_not_overlap_article():
    extracted = extract_part_info("ABC12345\nNGK spark plug")
    assert extracted.value("article_number") == "ABC12345"
    assert extracted.value("manufacturer") == "NGK"


def test_price_with_currency_beats_plain_number():
    extracted = extract_part_info("Qty 4\nPrice 320 UAH")
    assert extracted.value("price") == 320.0


def test_missing_fields_stay_absent():
    extracted = extract_part_info("???")
    assert extracted.found_fields() == []
    assert extracted.to_dict()["articleNumber"] is None
    assert extract_part_info("").found_fields() == []


def test_draft_applies_placeholders():
    now = datetime(2025, 5, 11, 20, 47, 48, tzinfo=timezone.utc)
    draft = ExtractedPart().to_draft(now=now)
    assert draft["articleNumber"] == "TEMP-20250511204748"
    assert draft["category"] == DEFAULT_CATEGORY
    assert draft["manufacturer"] == DEFAULT_MANUFACTURER
    assert draft["quantity"] == 1
    assert draft["isNew"] is True
    assert draft["price"] is None


def test_category_is_matched_case_insensitively():
    extracted = extract_part_info("Комплект ПІДВІСКА")
    assert extracted.value("category") == "підвіска"


def test_process_image_uses_recognizer(tmp_path):
    seen = []

    def recognizer(path):
        seen.append(path)
        return "NGK\nBKR6E-11\n180 грн"

    text, extracted = process_image(recognizer, str(tmp_path / "label.jpg"))
    assert seen == [str(tmp_path / "label.jpg")]
    assert text.startswith("NGK")
    assert extracted.value("article_number") == "BKR6E-11"
    assert extracted.value("price") == 180.0
