import pytest

from tests.fakes import SECRET, make_body
from yubiverify.domain.entities import ResponseStatus
from yubiverify.domain.errors import (
    InvalidClientError,
    OTPMismatchError,
    ProtocolError,
    SignatureVerificationError,
    StatusCodeError,
)
from yubiverify.domain.response import classify, parse_response, validate_response

OTP = "vvegefendfulhrrihgvibljnnnbikjhnbrtfjlkltvvg"
NONCE = "UlVyeUFvU1lVM3FLT0tIeHczWUJpN0"

RESPONSE = (
    "h=ckbn7gh0C/qsTciVqcxpQ8yOqWY=\n"
    "t=2010-12-30T14:30:12Z0264\n"
    "otp=vvegefendfulhrrihgvibljnnnbikjhnbrtfjlkltvvg\n"
    "nonce=UlVyeUFvU1lVM3FLT0tIeHczWUJpN0\n"
    "sl=75\n"
    "timestamp=10222212\n"
    "sessioncounter=1563\n"
    "sessionuse=3\n"
    "status=OK\n"
)
SIGNED_RESPONSE = RESPONSE.replace(
    "ckbn7gh0C/qsTciVqcxpQ8yOqWY=", "KaivS9Y2aU4Mp1NwoJIIHOCfYKw="
)


def test_parse_response_splits_signature_and_parameters():
    response = parse_response(RESPONSE)

    assert response.signature == "ckbn7gh0C/qsTciVqcxpQ8yOqWY="
    assert response.canonical == (
        "t=2010-12-30T14:30:12Z0264&otp=vvegefendfulhrrihgvibljnnnbikjhnbrtfjlkltvvg"
        "&nonce=UlVyeUFvU1lVM3FLT0tIeHczWUJpN0&sl=75&timestamp=10222212"
        "&sessioncounter=1563&sessionuse=3&status=OK"
    )
    assert response.parameters == {
        "t": "2010-12-30T14:30:12Z0264",
        "otp": OTP,
        "nonce": NONCE,
        "sl": "75",
        "timestamp": "10222212",
        "sessioncounter": "1563",
        "sessionuse": "3",
        "status": "OK",
    }
    assert list(response.parameters) == [
        "t", "otp", "nonce", "sl", "timestamp", "sessioncounter", "sessionuse", "status",
    ]
    assert response.status is ResponseStatus.OK
    assert response.timestamp == 10222212
    assert response.session_counter == 1563
    assert response.session_use == 3


def test_parse_response_signature_line_anywhere_and_crlf():
    body = "status=OK\r\nh=abc=\r\notp=x\r\n\r\n"
    response = parse_response(body)
    assert response.signature == "abc="
    assert response.canonical == "status=OK&otp=x"


def test_parse_response_rejects_line_without_equals():
    with pytest.raises(ProtocolError):
        parse_response("status=OK\ngarbage\n")


def test_missing_timestamp_raises_protocol_error():
    response = parse_response("status=OK\notp=x\n")
    with pytest.raises(ProtocolError):
        _ = response.timestamp


def test_golden_response_signature_verifies():
    status, response = validate_response(
        SIGNED_RESPONSE, otp=OTP, secret=SECRET, nonce=NONCE
    )
    assert status is ResponseStatus.OK
    assert response.timestamp == 10222212


def test_bad_signature_is_terminal_even_on_ok():
    with pytest.raises(SignatureVerificationError) as ei:
        validate_response(RESPONSE, otp=OTP, secret=SECRET)
    assert ei.value.actual == "ckbn7gh0C/qsTciVqcxpQ8yOqWY="
    assert ei.value.expected == "KaivS9Y2aU4Mp1NwoJIIHOCfYKw="


def test_missing_signature_with_secret_fails():
    body = make_body(None, otp=OTP, status="OK")
    with pytest.raises(SignatureVerificationError):
        validate_response(body, otp=OTP, secret=SECRET)


def test_no_secret_skips_signature_check():
    status, _ = validate_response(RESPONSE, otp=OTP, secret=None)
    assert status is ResponseStatus.OK


def test_missing_status_raises():
    with pytest.raises(ProtocolError, match="Missing status"):
        validate_response(make_body(otp=OTP), otp=OTP, secret=SECRET)


def test_otp_mismatch_raises():
    body = make_body(otp="vvegefendfulXXXX", status="OK")
    with pytest.raises(OTPMismatchError) as ei:
        validate_response(body, otp=OTP, secret=SECRET)
    assert ei.value.expected_otp == OTP
    assert ei.value.actual_otp == "vvegefendfulXXXX"


def test_ok_without_echoed_otp_is_a_mismatch():
    with pytest.raises(OTPMismatchError):
        validate_response(make_body(status="OK"), otp=OTP, secret=SECRET)


def test_nonce_mismatch_raises():
    body = make_body(otp=OTP, nonce="somethingelse0123", status="OK")
    with pytest.raises(ProtocolError):
        validate_response(body, otp=OTP, secret=SECRET, nonce=NONCE)


@pytest.mark.parametrize("code", ["OK", "ok", "Ok"])
def test_ok_is_case_insensitive(code):
    status, _ = validate_response(
        make_body(otp=OTP, status=code), otp=OTP, secret=SECRET
    )
    assert status is ResponseStatus.OK


def test_replayed_request_is_transient():
    status, _ = validate_response(
        make_body(otp=OTP, status="REPLAYED_REQUEST"), otp=OTP, secret=SECRET
    )
    assert status is ResponseStatus.REPLAYED_REQUEST


def test_no_such_client_without_otp_echo():
    body = make_body(status="NO_SUCH_CLIENT")
    with pytest.raises(InvalidClientError) as ei:
        validate_response(body, otp=OTP, secret=SECRET, client_id="1234")
    assert ei.value.client_id == "1234"


@pytest.mark.parametrize(
    "code,expected",
    [
        ("BAD_OTP", "bad_otp"),
        ("REPLAYED_OTP", "replayed_otp"),
        ("BAD_SIGNATURE", "bad_signature"),
        ("BACKEND_ERROR", "backend_error"),
        ("SOMETHING_NEW", "something_new"),
    ],
)
def test_negative_statuses_raise_status_code_error(code, expected):
    body = make_body(otp=OTP, status=code)
    with pytest.raises(StatusCodeError) as ei:
        validate_response(body, otp=OTP, secret=SECRET)
    assert ei.value.status_code == expected


def test_classify_signature_checked_before_status():
    response = parse_response(make_body(b"wrong", otp=OTP, status="BAD_OTP"))
    with pytest.raises(SignatureVerificationError):
        classify(response, otp=OTP, secret=SECRET)
