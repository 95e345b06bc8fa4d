"""Tests for the exception hierarchy."""

from gree_udp_protocol import (
    ConfigError,
    CryptoError,
    GreeError,
    GreeIoError,
    InvalidValue,
    InvalidVariable,
    NotFound,
    ProtocolError,
    ResponseTimeout,
    SerializationError,
    http_status_for_error,
)


def test_all_errors_share_a_base():
    for exc in (CryptoError("x"), SerializationError("x"), GreeIoError("x"), ResponseTimeout("x"),
                NotFound("den"), InvalidVariable("Bogus"), InvalidValue("Pow", "2"), ConfigError("x")):
        assert isinstance(exc, GreeError)
    assert isinstance(SerializationError("x"), ProtocolError)


def test_http_status_mapping():
    assert http_status_for_error(NotFound("den")) == 404
    assert http_status_for_error(ResponseTimeout("late")) == 503
    assert http_status_for_error(GreeIoError("down")) == 503
    assert http_status_for_error(InvalidValue("Pow", "2")) == 400
    assert http_status_for_error(ProtocolError("odd")) == 400


def test_messages_name_the_subject():
    assert "den" in str(NotFound("den"))
    assert "Bogus" in str(InvalidVariable("Bogus"))
    assert "Pow" in str(InvalidValue("Pow", "2"))
