import pytest

from rpcnet.utils.hosts import DomainsValidation, Host, Port, is_host_valid, update


def test_should_parse_host():
    assert Host.parse("http://parity.io") == Host("parity.io", None)
    assert Host.parse("https://parity.io:8443") == Host("parity.io", 8443)
    assert Host.parse("chrome-extension://124.0.0.1") == Host("124.0.0.1", None)
    assert Host.parse("parity.io/somepath") == Host("parity.io", None)
    assert Host.parse("127.0.0.1:8545/somepath") == Host("127.0.0.1", 8545)


def test_parse_pattern_port():
    host = Host.parse("*.web3.site:*")
    assert host.port == Port("*")
    assert str(host) == "*.web3.site:*"


def test_host_string_form():
    assert str(Host.parse("http://parity.io")) == "parity.io"
    assert str(Host.parse("https://parity.io:8443")) == "parity.io:8443"


def test_should_reject_when_there_is_no_header():
    assert is_host_valid(None, []) is False


def test_should_reject_when_validation_is_disabled():
    assert is_host_valid("any", None) is True


def test_should_reject_if_header_not_on_the_list():
    assert is_host_valid("parity.io", []) is False


def test_should_accept_if_on_the_list():
    assert is_host_valid("parity.io", [Host.parse("parity.io")]) is True


def test_should_accept_if_on_the_list_with_port():
    assert is_host_valid("parity.io:443", [Host.parse("parity.io:443")]) is True


def test_should_support_wildcards():
    assert is_host_valid("parity.web3.site:8180", [Host.parse("*.web3.site:*")]) is True


def test_port_out_of_range_rejected():
    with pytest.raises(ValueError):
        Host("parity.io", 70000)


def test_update_adds_address_and_localhost_alias():
    result = update([], ("127.0.0.1", 8545))
    assert set(result) == {Host.parse("127.0.0.1:8545"), Host.parse("localhost:8545")}
    assert len(result) == 2


def test_update_keeps_disabled_validation():
    assert update(None, "127.0.0.1:8545") is None


def test_update_deduplicates():
    existing = [Host.parse("127.0.0.1:8545")]
    assert len(update(existing, "127.0.0.1:8545")) == 2


def test_domains_validation_round_trip():
    assert DomainsValidation.allow_only(["a", "b"]).to_list() == ["a", "b"]
    assert DomainsValidation.disabled().to_list() is None
    assert DomainsValidation.from_optional(None) == DomainsValidation.disabled()