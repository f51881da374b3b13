from mila_assistant.services.entity_extractor import EntityCategory


def test_extracts_codes_in_order_of_appearance(extractor):
    tokens = extractor.find_code_tokens("Bill 92250 with E11.9 and modifier 25 at POS 11")
    assert [(token.code, token.system) for token in tokens] == [
        ("92250", "CPT"),
        ("E11.9", "ICD-10"),
        ("25", "MODIFIER"),
        ("11", "POS"),
    ]


def test_extracts_hyphenated_modifier(extractor):
    tokens = extractor.find_code_tokens("Is 99213-25 allowed?")
    assert ("99213", "CPT") in [(t.code, t.system) for t in tokens]
    assert ("25", "MODIFIER") in [(t.code, t.system) for t in tokens]


def test_reports_only_substrings_present_in_the_text(extractor):
    text = "Patient with Diabetic Retinopathy needs fundus photography"
    entities = extractor.extract(text)
    for entity in entities:
        assert entity.text.lower() in text.lower()
    categories = {(entity.normalized, entity.category) for entity in entities}
    assert ("diabetic", EntityCategory.CONDITION) in categories
    assert ("retinopathy", EntityCategory.CONDITION) in categories
    assert ("fundus photography", EntityCategory.PROCEDURE) in categories


def test_extraction_is_deterministic(extractor):
    text = "E11.9 diabetes and H35.01 retinopathy"
    assert extractor.extract(text) == extractor.extract(text)


def test_no_matches_is_an_empty_list(extractor):
    assert extractor.extract("hello there") == []
    assert extractor.extract("") == []


def test_code_shaped_inputs(extractor):
    for text in ("E11.9", "92250", "G0108", "H35.01?", " 99213 "):
        assert extractor.is_code_shaped(text), text
    for text in ("what is E11.9", "hello", "2020 claims"):
        assert not extractor.is_code_shaped(text), text


def test_finds_npis(extractor):
    assert extractor.find_npis("check NPI 1234567893 please") == ["1234567893"]
