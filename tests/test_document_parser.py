import pytest

from clinic_biometrics.document_parser import (
    DocumentType,
    merge_fields,
    parse_document_text,
    score_confidence,
    split_name,
)


def test_labelled_name_and_birth_date():
    text = "Name: John Allen Smith\nDate of Birth: 05/12/1990"
    parsed = parse_document_text(text, DocumentType.ID_CARD)
    assert parsed.fields == {"fullName": "John Allen Smith", "dateOfBirth": "05/12/1990"}
    assert parsed.name_parts == {}
    assert score_confidence(parsed.all_fields()) == pytest.approx(0.75)


def test_full_passport_page():
    text = "\n".join([
        "REPUBLIC OF UTOPIA",
        "Full Name: Maria Elena Garcia",
        "Passport No. X12345678",
        "Nationality: Utopian",
        "DOB: 1-2-1985",
        "Sex: F",
        "Date of Issue: 01/03/2020",
        "Date of Expiry: 01/03/2030",
        "Address: 12 Harbour Road, Port Town",
    ])
    fields = parse_document_text(text, DocumentType.PASSPORT).fields
    assert fields["fullName"] == "Maria Elena Garcia"
    assert fields["documentNumber"] == "X12345678"
    assert fields["nationality"] == "Utopian"
    assert fields["dateOfBirth"] == "1-2-1985"
    assert fields["gender"] == "F"
    assert fields["issueDate"] == "01/03/2020"
    assert fields["expiryDate"] == "01/03/2030"
    assert fields["address"] == "12 Harbour Road, Port Town"
    assert score_confidence(fields) == 0.95


def test_labels_are_case_insensitive():
    fields = parse_document_text("NAME: jane doe\ndob: 01.02.2003", DocumentType.OTHER).fields
    assert fields["fullName"] == "jane doe"
    assert fields["dateOfBirth"] == "01.02.2003"


def test_document_number_needs_a_digit_and_a_whole_label():
    text = "Identity Card\nHolder Signature\nID No: AB1234567"
    fields = parse_document_text(text, DocumentType.ID_CARD).fields
    assert fields["documentNumber"] == "AB1234567"


def test_first_line_name_is_split():
    parsed = parse_document_text("\n  Anna Maria Louisa Berg  \nSomething else", DocumentType.DRIVER_LICENSE)
    assert parsed.fields["fullName"] == "Anna Maria Louisa Berg"
    assert parsed.name_parts == {"firstName": "Anna", "lastName": "Berg", "middleName": "Maria Louisa"}
    assert parsed.all_fields()["middleName"] == "Maria Louisa"


def test_two_word_first_line_has_no_middle_name():
    parsed = parse_document_text("Tom Jones\n", DocumentType.OTHER)
    assert parsed.name_parts == {"firstName": "Tom", "lastName": "Jones"}


def test_first_line_must_be_capitalised_words():
    for text in ("JOHN SMITH", "john smith", "Smith", "John Smith 42"):
        assert "fullName" not in parse_document_text(text, DocumentType.OTHER).fields


def test_unmatched_fields_are_absent():
    parsed = parse_document_text("", DocumentType.OTHER)
    assert parsed.fields == {}
    assert score_confidence(parsed.fields) == 0.5


def test_split_name_single_token():
    assert split_name("Cher") == {}


def test_back_side_wins_on_merge():
    front = {"fullName": "John Smith", "expiryDate": "01/01/2020"}
    back = {"expiryDate": "01/01/2030", "issueDate": "01/01/2020"}
    assert merge_fields(front, back) == {
        "fullName": "John Smith", "expiryDate": "01/01/2030", "issueDate": "01/01/2020",
    }


def test_confidence_never_exceeds_ceiling():
    every = {k: "x" for k in ("fullName", "dateOfBirth", "documentNumber", "nationality",
                              "expiryDate", "address", "gender", "issueDate", "extra")}
    assert score_confidence(every) == 0.95
