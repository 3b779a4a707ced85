from app.models.geo import GeocodedLocation
from app.services import text_analysis as ta


def test_correct_ocr_text_keeps_lines_and_spacing():
    raw = "강남Station!!\n\nmain   street\n서울2호선"
    out = ta.correct_ocr_text(raw)
    assert out.split("\n") == ["강남 Station", "Main street", "서울 2 호선"]


def test_correct_ocr_text_short_input_passthrough():
    assert ta.correct_ocr_text("a") == "a"
    assert ta.correct_ocr_text("") == ""


def test_korean_detected_from_single_syllable():
    info = ta.detect_language_and_country("Mostly English words here 한")
    assert info.language == "kor"
    assert info.countries == ["kr"]
    assert info.confidence == 1.0


def test_korean_address_scenario():
    info = ta.detect_language_and_country("서울특별시 강남구 신사동")
    assert info.language == "kor"
    assert info.countries == ["kr"]


def test_language_cascade():
    assert ta.detect_language_and_country("东京塔").language == "cmn"
    assert ta.detect_language_and_country("Café de la Paix").language == "fra"
    assert ta.detect_language_and_country("Große Straße und Platz").language == "deu"
    assert ta.detect_language_and_country("Москва").language == "rus"
    assert ta.detect_language_and_country("Phở Hà Nội").language == "vie"


def test_english_default():
    info = ta.detect_language_and_country("Main Street")
    assert info.language == "eng"
    assert "us" in info.countries
    assert info.confidence == 0.7


def test_accent_without_function_word_is_not_french():
    # accent alone is not enough for a latin-script language
    assert ta.detect_language_and_country("Crème").language == "eng"


def test_too_short_text_has_no_language():
    info = ta.detect_language_and_country(" x ")
    assert info.language is None
    assert info.countries == []


def test_is_location_name():
    assert ta.is_location_name("강남구")
    assert ta.is_location_name("Main Street")
    assert ta.is_location_name("롯데타워")
    assert ta.is_location_name("123번지")
    assert not ta.is_location_name("123")
    assert not ta.is_location_name("open now")
    assert not ta.is_location_name("x")


def test_extract_country_code_prefers_address_code():
    loc = GeocodedLocation(display_name="Paris, France", lat=0, lon=0, address={"country_code": "FR"})
    assert ta.extract_country_code(loc) == "fr"


def test_extract_country_code_from_address_country_name():
    loc = GeocodedLocation(display_name="강남구, 서울", lat=0, lon=0, address={"country": "대한민국"})
    assert ta.extract_country_code(loc) == "kr"


def test_extract_country_code_from_display_name():
    loc = GeocodedLocation(display_name="Tour Eiffel, Paris, France", lat=0, lon=0)
    assert ta.extract_country_code(loc) == "fr"


def test_extract_country_code_word_boundary():
    loc = GeocodedLocation(display_name="Kyiv, Ukraine", lat=0, lon=0)
    assert ta.extract_country_code(loc) is None
